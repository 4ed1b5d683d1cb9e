"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .direct_message import (
    ConversationInfo,
    ConversationListResponse,
    ConversationMessagesResponse,
    ConversationResponse,
    ConversationSummary,
    DirectMessageCreate,
    DirectMessageEnvelope,
    DirectMessageResponse,
    DirectUser,
)
from .message import (
    MessageCreate,
    MessageDeleteResponse,
    MessageEnvelope,
    MessageFileIn,
    MessageFileResponse,
    MessageListResponse,
    MessageResponse,
    ReactionListResponse,
    ReactionSummary,
    ReactionToggle,
)
from .room import ReadMarkerResponse, RoomListResponse, RoomResponse, UnreadCountsResponse
from .user import UserSearchResponse, UserSearchResult

__all__ = [
    "ConversationInfo", "ConversationListResponse", "ConversationMessagesResponse",
    "ConversationResponse", "ConversationSummary",
    "DirectMessageCreate", "DirectMessageEnvelope", "DirectMessageResponse", "DirectUser",
    "MessageCreate", "MessageDeleteResponse", "MessageEnvelope", "MessageFileIn",
    "MessageFileResponse", "MessageListResponse", "MessageResponse",
    "ReactionListResponse", "ReactionSummary", "ReactionToggle",
    "ReadMarkerResponse", "RoomListResponse", "RoomResponse", "UnreadCountsResponse",
    "UserSearchResponse", "UserSearchResult",
]
