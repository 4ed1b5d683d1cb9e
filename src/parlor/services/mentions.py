"""Mention extraction for room messages."""

from __future__ import annotations

import logging
import re

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from parlor.core.settings import settings
from parlor.models import ChatMessage, ChatRoom, User
from parlor.models.notification import NOTIFICATION_KIND_CHAT_MENTION

from .notifications import NotificationSink, NotificationTarget
from .sanitize import preview

logger = logging.getLogger(__name__)

_MENTION_RE = re.compile(r"(?<![\w@])@([A-Za-z0-9_][A-Za-z0-9_.\-]*)")


def extract_mentions(text: str) -> list[str]:
    """Return mentioned usernames, lower-cased, in first-seen order."""
    seen: dict[str, None] = {}
    for match in _MENTION_RE.finditer(text):
        # Trailing punctuation is sentence text, not part of the handle.
        name = match.group(1).rstrip(".-").lower()
        if name:
            seen.setdefault(name, None)
    return list(seen)


def notify_mentions(db: Session, *, room: ChatRoom, message: ChatMessage) -> int:
    """Emit a ``chat_mention`` notification to each mentioned user.

    Best-effort: lookup or insert failures are logged and never propagate.

    Returns:
        Number of notifications written.
    """
    names = extract_mentions(message.message_text)
    if not names:
        return 0

    try:
        users = db.query(User).filter(func.lower(User.username).in_(names)).all()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("Skipping mention notifications for message %s: %s", message.id, exc)
        return 0

    sink = NotificationSink(db)
    target = NotificationTarget.room(room.id)
    description = preview(message.message_text, settings.chat_notification_preview_length)
    sent = 0
    for user in users:
        if user.email == message.user_email:
            continue
        notification = sink.create(
            title=f"{message.username} mentioned you in #{room.name}",
            description=description,
            kind=NOTIFICATION_KIND_CHAT_MENTION,
            target=target,
            addressee=user.email,
        )
        if notification is not None:
            sent += 1
    return sent
