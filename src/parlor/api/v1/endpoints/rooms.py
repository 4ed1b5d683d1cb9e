"""Room endpoints: directory, message ledger, reactions, live stream and read markers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, Query, Request, status
from fastapi.responses import StreamingResponse

from parlor.schemas.message import (
    MessageCreate,
    MessageDeleteResponse,
    MessageEnvelope,
    MessageListResponse,
    ReactionListResponse,
    ReactionToggle,
)
from parlor.schemas.room import (
    ReadMarkerResponse,
    RoomListResponse,
    RoomResponse,
    UnreadCountsResponse,
)
from parlor.services import read_markers, rooms
from parlor.services.errors import NotFound
from parlor.services.live_updates import LiveUpdateChannel, store_fetcher, store_room_check
from parlor.services.reactions import toggle_reaction

from ..dependencies import CallerDep, SessionDep, SessionFactoryDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


@router.get("/rooms", response_model=RoomListResponse)
def list_rooms(caller: CallerDep, db: SessionDep) -> RoomListResponse:
    """List active rooms, priority rooms first."""
    return RoomListResponse(
        rooms=[RoomResponse.model_validate(room) for room in rooms.list_rooms(db)]
    )


@router.get("/rooms/{room_id}/messages", response_model=MessageListResponse)
def list_messages(
    room_id: int,
    caller: CallerDep,
    db: SessionDep,
    before_id: int | None = Query(None, description="Return messages older than this id"),
    limit: int | None = Query(None, description="Page size"),
) -> MessageListResponse:
    """Return a page of the room's messages, oldest first."""
    messages = rooms.list_messages(db, room_id=room_id, before_id=before_id, limit=limit)
    return MessageListResponse(
        messages=[rooms.serialize_message(message, caller.email) for message in messages]
    )


@router.post(
    "/rooms/{room_id}/messages",
    response_model=MessageEnvelope,
    status_code=status.HTTP_201_CREATED,
)
def post_message(
    room_id: int,
    payload: MessageCreate,
    caller: CallerDep,
    db: SessionDep,
) -> MessageEnvelope:
    """Post a message with optional attachments."""
    message = rooms.post_message(
        db,
        room_id=room_id,
        caller=caller,
        message_text=payload.message_text,
        files=payload.files,
    )
    return MessageEnvelope(message=rooms.serialize_message(message, caller.email))


@router.delete(
    "/rooms/{room_id}/messages/{message_id}",
    response_model=MessageDeleteResponse,
)
def delete_message(
    room_id: int,
    message_id: int,
    caller: CallerDep,
    db: SessionDep,
) -> MessageDeleteResponse:
    """Delete a message; authors delete their own, moderators any."""
    rooms.delete_message(db, room_id=room_id, message_id=message_id, caller=caller)
    return MessageDeleteResponse(success=True)


@router.post(
    "/rooms/{room_id}/messages/{message_id}/react",
    response_model=ReactionListResponse,
)
def react_to_message(
    room_id: int,
    message_id: int,
    payload: ReactionToggle,
    caller: CallerDep,
    db: SessionDep,
) -> ReactionListResponse:
    """Toggle the caller's reaction and return the recomputed summary."""
    summary = toggle_reaction(
        db,
        room_id=room_id,
        message_id=message_id,
        caller=caller,
        emoji=payload.emoji,
    )
    return ReactionListResponse(reactions=summary)


@router.get("/rooms/{room_id}/messages/stream")
async def stream_messages(
    room_id: int,
    request: Request,
    caller: CallerDep,
    db: SessionDep,
    session_factory: SessionFactoryDep,
    after_id: int | None = Query(None, ge=0, description="Resume after this message id"),
) -> StreamingResponse:
    """Stream new room messages as Server-Sent Events.

    Without ``after_id`` the stream starts at the room's current newest
    message; clients load history through the list endpoint first.
    """

    def starting_watermark() -> int | None:
        if not rooms.room_is_active(db, room_id):
            return None
        return after_id if after_id is not None else rooms.latest_message_id(db, room_id)

    watermark = await asyncio.to_thread(starting_watermark)
    if watermark is None:
        raise NotFound("Room not found")

    channel = LiveUpdateChannel(
        room_id,
        store_fetcher(session_factory, caller.email),
        room_check=store_room_check(session_factory),
        last_delivered_id=watermark,
    )
    logger.debug("Opening live stream for %s in room %s", caller.email, room_id)

    async def frames() -> AsyncIterator[str]:
        async for event in channel.events(is_disconnected=request.is_disconnected):
            yield event.encode()

    return StreamingResponse(
        frames(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.post("/rooms/{room_id}/read", response_model=ReadMarkerResponse)
def mark_room_read(room_id: int, caller: CallerDep, db: SessionDep) -> ReadMarkerResponse:
    """Record that the caller has read the room up to now."""
    last_read_at = read_markers.mark_room_read(db, room_id=room_id, caller=caller)
    return ReadMarkerResponse(ok=True, last_read_at=last_read_at)


@router.get("/mentions/unread", response_model=UnreadCountsResponse)
def unread_mentions(caller: CallerDep, db: SessionDep) -> UnreadCountsResponse:
    """Return unread mention counts for every active room."""
    counts = read_markers.unread_counts_by_room(db, caller=caller)
    return UnreadCountsResponse(by_room={str(room_id): count for room_id, count in counts.items()})
