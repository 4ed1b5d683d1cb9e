"""Core configuration for the Parlor service."""
