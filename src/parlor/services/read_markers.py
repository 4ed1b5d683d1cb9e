"""Read markers and mention-based unread counts per room."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import desc
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from parlor.db.time import as_utc, utcnow
from parlor.models import ChatRoom, ChatRoomRead, Notification
from parlor.models.notification import NOTIFICATION_KIND_CHAT_MENTION, TARGET_TYPE_ROOM

from .errors import Internal, NotFound
from .identity import Caller
from .notifications import NotificationTarget

logger = logging.getLogger(__name__)


def mark_room_read(db: Session, *, room_id: int, caller: Caller) -> datetime:
    """Upsert the caller's marker for the room to now.

    Returns:
        The stored last-read timestamp.

    Raises:
        NotFound: If the room does not exist
    """
    if db.query(ChatRoom.id).filter(ChatRoom.id == room_id).first() is None:
        raise NotFound("Room not found")

    now = utcnow()
    marker = db.get(ChatRoomRead, (caller.email, room_id))
    try:
        if marker is None:
            db.add(ChatRoomRead(user_email=caller.email, room_id=room_id, last_read_at=now))
        else:
            marker.last_read_at = now
        db.commit()
    except IntegrityError:
        # Another request created the marker first; move it forward instead.
        db.rollback()
        marker = db.get(ChatRoomRead, (caller.email, room_id))
        if marker is None:  # pragma: no cover - row vanished again
            raise Internal("Failed to mark room as read") from None
        marker.last_read_at = now
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to mark room %s read for %s", room_id, caller.email)
        raise Internal("Failed to mark room as read") from exc
    return now


def unread_counts_by_room(db: Session, *, caller: Caller) -> dict[int, int]:
    """Count unseen mention notifications per active room.

    A notification counts when its room has no marker for the caller or it
    was created strictly after the marker. Notifications whose target is not
    a room are ignored.

    Returns:
        Mapping of every active room id to its unread count (zeros included).
    """
    room_ids = [
        room_id
        for (room_id,) in db.query(ChatRoom.id).filter(ChatRoom.is_active.is_(True)).all()
    ]
    counts = {room_id: 0 for room_id in room_ids}

    last_read_by_room = {
        marker.room_id: as_utc(marker.last_read_at)
        for marker in db.query(ChatRoomRead).filter(ChatRoomRead.user_email == caller.email)
    }

    notifications = (
        db.query(Notification)
        .filter(
            Notification.user_email == caller.email,
            Notification.kind == NOTIFICATION_KIND_CHAT_MENTION,
        )
        .order_by(desc(Notification.created_at))
        .all()
    )

    for notification in notifications:
        target = NotificationTarget.of(notification)
        if target is None or target.target_type != TARGET_TYPE_ROOM:
            continue
        if target.target_id not in counts:
            continue
        last_read = last_read_by_room.get(target.target_id)
        if last_read is not None and as_utc(notification.created_at) <= last_read:
            continue
        counts[target.target_id] += 1
    return counts
