# src/parlor/models/__init__.py
"""SQLAlchemy models for the Parlor application."""

from .direct_message import DirectConversation, DirectMessage, DirectParticipant
from .message import ChatMessage, ChatMessageFile, ChatMessageReaction
from .notification import Notification
from .room import ChatRoom, ChatRoomRead
from .user import User

__all__ = [
    "ChatMessage", "ChatMessageFile", "ChatMessageReaction",
    "ChatRoom", "ChatRoomRead",
    "DirectConversation", "DirectMessage", "DirectParticipant",
    "Notification",
    "User",
]
