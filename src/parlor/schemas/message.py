"""Room message Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class MessageFileIn(BaseModel):
    """Attachment metadata for a file already uploaded to object storage.

    Fields are checked by the ledger so that incomplete entries surface as a
    validation error rather than a request-shape error.
    """

    file_url: str | None = None
    file_name: str | None = None
    file_type: str | None = None
    file_size: int | None = None


class MessageCreate(BaseModel):
    """Schema for posting a message to a room."""

    message_text: str | None = Field(None, description="Body text; optional when files are attached")
    files: list[MessageFileIn] = Field(default_factory=list)


class MessageFileResponse(BaseModel):
    """Attachment returned with a message."""

    id: int
    file_url: str
    file_name: str
    file_type: str
    file_size: int | None = None

    model_config = ConfigDict(from_attributes=True)


class ReactionSummary(BaseModel):
    """Aggregated reactions for one emoji on a message."""

    emoji: str
    count: int
    reacted: bool = Field(..., description="Whether the requesting user reacted with this emoji")


class MessageResponse(BaseModel):
    """Room message with read-time author details."""

    id: int
    room_id: int
    user_email: str
    username: str
    message_text: str
    created_at: datetime | None = None
    profile_picture_url: str | None = None
    user_role: str | None = None
    files: list[MessageFileResponse] = Field(default_factory=list)
    reactions: list[ReactionSummary] = Field(default_factory=list)


class MessageEnvelope(BaseModel):
    """Single message wrapper returned after posting."""

    message: MessageResponse


class MessageListResponse(BaseModel):
    """Page of messages, oldest first."""

    messages: list[MessageResponse]


class MessageDeleteResponse(BaseModel):
    """Acknowledgement of a deleted message."""

    success: bool = True


class ReactionToggle(BaseModel):
    """Schema for toggling a reaction."""

    emoji: str = Field(..., description="Emoji from the allowed reaction palette")


class ReactionListResponse(BaseModel):
    """Full recomputed reaction summary for a message."""

    reactions: list[ReactionSummary]
