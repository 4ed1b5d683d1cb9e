"""Version 1 API endpoints."""

from .endpoints import direct_messages_router, rooms_router, users_router

__all__ = [
    "rooms_router",
    "direct_messages_router",
    "users_router",
]
