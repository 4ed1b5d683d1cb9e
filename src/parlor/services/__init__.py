"""Business logic services for the Parlor chat service."""

from .errors import ChatError, Forbidden, Internal, NotFound, Unauthorized, ValidationError
from .identity import Caller
from .live_updates import LiveUpdateChannel
from .notifications import NotificationSink, NotificationTarget

__all__ = [
    "Caller",
    "ChatError",
    "Forbidden",
    "Internal",
    "LiveUpdateChannel",
    "NotFound",
    "NotificationSink",
    "NotificationTarget",
    "Unauthorized",
    "ValidationError",
]
