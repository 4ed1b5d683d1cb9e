"""Room directory and per-room message ledger."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import desc, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, joinedload

from parlor.core.settings import settings
from parlor.models import ChatMessage, ChatMessageFile, ChatRoom
from parlor.schemas.message import MessageFileIn, MessageFileResponse, MessageResponse

from .errors import Forbidden, Internal, NotFound, ValidationError
from .identity import Caller
from .mentions import notify_mentions
from .reactions import summarize_reactions
from .sanitize import sanitize_body

logger = logging.getLogger(__name__)


def list_rooms(db: Session) -> list[ChatRoom]:
    """Return active rooms ordered by name, configured priority rooms first."""
    rooms = (
        db.query(ChatRoom)
        .filter(ChatRoom.is_active.is_(True))
        .order_by(ChatRoom.name)
        .all()
    )
    priority = {name: rank for rank, name in enumerate(settings.chat_priority_rooms)}
    if not priority:
        return rooms
    return sorted(rooms, key=lambda room: priority.get(room.name, len(priority)))


def get_active_room(db: Session, room_id: int) -> ChatRoom:
    """Return the room if it exists and is active.

    Raises:
        NotFound: If no room has this id
        Forbidden: If the room has been deactivated
    """
    room = db.query(ChatRoom).filter(ChatRoom.id == room_id).first()
    if room is None:
        raise NotFound("Room not found")
    if not room.is_active:
        raise Forbidden("Room is not active")
    return room


def room_is_active(db: Session, room_id: int) -> bool:
    """Return True when the room exists and is active."""
    return (
        db.query(ChatRoom.id)
        .filter(ChatRoom.id == room_id, ChatRoom.is_active.is_(True))
        .first()
        is not None
    )


def _ledger_query(db: Session) -> Query[ChatMessage]:
    # Files, reactions and author come back in the same statement as the messages,
    # overwriting collections already held by the session.
    return (
        db.query(ChatMessage)
        .options(
            joinedload(ChatMessage.files),
            joinedload(ChatMessage.reactions),
            joinedload(ChatMessage.author),
        )
        .populate_existing()
    )


def _page_size(limit: int | None) -> int:
    if limit is None:
        return min(settings.chat_default_page_size, settings.chat_max_page_size)
    if limit < 1:
        raise ValidationError("limit must be a positive integer")
    return min(limit, settings.chat_max_page_size)


def list_messages(
    db: Session,
    *,
    room_id: int,
    before_id: int | None = None,
    limit: int | None = None,
) -> list[ChatMessage]:
    """Return a page of the room ledger, oldest first.

    Args:
        db: Database session
        room_id: Room to read
        before_id: Only messages with a smaller id; omit for the newest page
        limit: Page size, clamped to the configured maximum

    Returns:
        Up to ``limit`` messages in ascending id order
    """
    room = get_active_room(db, room_id)
    page_size = _page_size(limit)

    query = _ledger_query(db).filter(ChatMessage.room_id == room.id)
    if before_id is not None:
        query = query.filter(ChatMessage.id < before_id)

    newest_first = query.order_by(desc(ChatMessage.id)).limit(page_size).all()
    return list(reversed(newest_first))


def messages_since(db: Session, *, room_id: int, after_id: int) -> list[ChatMessage]:
    """Return messages newer than ``after_id`` in ascending id order."""
    return (
        _ledger_query(db)
        .filter(ChatMessage.room_id == room_id, ChatMessage.id > after_id)
        .order_by(ChatMessage.id)
        .all()
    )


def latest_message_id(db: Session, room_id: int) -> int:
    """Return the highest message id in the room, or 0 when it is empty."""
    value = (
        db.query(func.max(ChatMessage.id))
        .filter(ChatMessage.room_id == room_id)
        .scalar()
    )
    return int(value or 0)


def get_message(db: Session, message_id: int) -> ChatMessage | None:
    """Load one message with its files, reactions and author."""
    return _ledger_query(db).filter(ChatMessage.id == message_id).first()


def _validate_files(files: Sequence[MessageFileIn]) -> None:
    for file in files:
        if not (file.file_url and file.file_name and file.file_type):
            raise ValidationError(
                "Invalid file data. file_url, file_name, and file_type are required."
            )


def post_message(
    db: Session,
    *,
    room_id: int,
    caller: Caller,
    message_text: str | None,
    files: Sequence[MessageFileIn] = (),
) -> ChatMessage:
    """Append a message and its attachments to the room ledger.

    The message and its file rows are committed together; a store failure
    leaves neither behind. Mention notifications go out after the commit.

    Raises:
        ValidationError: If body and files are both empty, or a file is incomplete
        NotFound: If the room does not exist
        Forbidden: If the room is inactive
        Internal: If the store rejected the write
    """
    body = sanitize_body(message_text)
    if not body and not files:
        raise ValidationError("Message text or files are required")
    _validate_files(files)
    room = get_active_room(db, room_id)

    message = ChatMessage(
        room_id=room.id,
        user_email=caller.email,
        username=caller.username,
        message_text=body,
    )
    message.files = [
        ChatMessageFile(
            file_url=file.file_url,
            file_name=file.file_name,
            file_type=file.file_type,
            file_size=file.file_size,
        )
        for file in files
    ]

    try:
        db.add(message)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to save chat message in room %s", room.id)
        raise Internal("Failed to post message. Please try again.") from exc

    logger.debug("Posted message %s to room %s", message.id, room.id)
    if body:
        notify_mentions(db, room=room, message=message)

    stored = get_message(db, message.id)
    if stored is None:  # pragma: no cover - deleted between commit and reload
        raise NotFound("Message not found")
    return stored


def delete_message(db: Session, *, room_id: int, message_id: int, caller: Caller) -> None:
    """Delete a message with its attachments and reactions.

    Raises:
        NotFound: If the message is not in the room
        Forbidden: If the caller is neither the author nor a moderator
    """
    message = (
        db.query(ChatMessage)
        .filter(ChatMessage.id == message_id, ChatMessage.room_id == room_id)
        .first()
    )
    if message is None:
        raise NotFound("Message not found")
    if not caller.is_moderator and message.user_email != caller.email:
        raise Forbidden("You can only delete your own messages")

    # The cascade must see the current attachment and reaction rows.
    db.expire(message, ["files", "reactions"])
    try:
        db.delete(message)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to delete chat message %s", message_id)
        raise Internal("Failed to delete message") from exc
    logger.info("Message %s in room %s deleted by %s", message_id, room_id, caller.email)


def serialize_message(message: ChatMessage, viewer_email: str | None) -> MessageResponse:
    """Build the API payload, joining the author's current avatar and role."""
    author = message.author
    return MessageResponse(
        id=message.id,
        room_id=message.room_id,
        user_email=message.user_email,
        username=message.username,
        message_text=message.message_text,
        created_at=message.created_at,
        profile_picture_url=author.profile_picture_url if author else None,
        user_role=(author.user_role if author else None) or settings.chat_default_user_role,
        files=[MessageFileResponse.model_validate(file) for file in message.files],
        reactions=summarize_reactions(message.reactions, viewer_email),
    )
