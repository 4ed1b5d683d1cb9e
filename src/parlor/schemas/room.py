"""Room-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class RoomResponse(BaseModel):
    """Schema for room information returned by the API."""

    id: int
    name: str
    description: str | None = None
    topic: str | None = None
    is_active: bool
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class RoomListResponse(BaseModel):
    """Active rooms in directory order."""

    rooms: list[RoomResponse]


class ReadMarkerResponse(BaseModel):
    """Acknowledgement of a read-marker update."""

    ok: bool = True
    last_read_at: datetime


class UnreadCountsResponse(BaseModel):
    """Unread mention counts keyed by room id."""

    by_room: dict[str, int] = Field(
        ...,
        description="Room id to unread mention count; every active room is present.",
    )
