"""API endpoint modules for version 1."""

from .direct_messages import router as direct_messages_router
from .rooms import router as rooms_router
from .users import router as users_router

__all__ = [
    "rooms_router",
    "direct_messages_router",
    "users_router",
]
