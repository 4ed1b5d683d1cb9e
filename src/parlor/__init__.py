"""Parlor: real-time chat rooms and direct messages."""

__version__ = "0.1.0"
