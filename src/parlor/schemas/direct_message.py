"""Direct message-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class DirectUser(BaseModel):
    """Public identity of the other participant."""

    email: str
    username: str


class DirectMessageCreate(BaseModel):
    """Schema for sending a direct message."""

    message_text: str = Field("", description="Message body, at most 2000 characters are kept")


class DirectMessageResponse(BaseModel):
    """Schema for direct message information returned by the API."""

    id: int
    dm_id: int
    sender_email: str
    username: str
    message_text: str
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class DirectMessageEnvelope(BaseModel):
    """Single direct message wrapper returned after sending."""

    message: DirectMessageResponse


class ConversationInfo(BaseModel):
    """Conversation id and the other participant."""

    dm_id: int
    other_user: DirectUser


class ConversationResponse(ConversationInfo):
    """Conversation with its full history, oldest first."""

    messages: list[DirectMessageResponse]


class ConversationMessagesResponse(BaseModel):
    """History of a conversation, oldest first."""

    messages: list[DirectMessageResponse]


class ConversationSummary(ConversationInfo):
    """Conversation row in the DM list with its latest message."""

    last_message: DirectMessageResponse | None = None


class ConversationListResponse(BaseModel):
    """Conversations ordered by latest activity."""

    conversations: list[ConversationSummary]
