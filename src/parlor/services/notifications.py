"""Notification sink and typed notification targets.

Chat produces ``dm`` notifications and mention notifications, and consumes
``chat_mention`` rows when computing unread badges. Emission is best-effort:
a failing sink is logged and never fails the action that triggered it.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from parlor.models import Notification
from parlor.models.notification import TARGET_TYPE_CONVERSATION, TARGET_TYPE_ROOM

logger = logging.getLogger(__name__)

_ROOM_LINK_RE = re.compile(r"[?&]room=(\d+)")
_DM_LINK_RE = re.compile(r"[?&]dm=(\d+)")


@dataclass(frozen=True)
class NotificationTarget:
    """Destination a notification deep-links to."""

    target_type: str
    target_id: int

    @classmethod
    def room(cls, room_id: int) -> NotificationTarget:
        return cls(TARGET_TYPE_ROOM, room_id)

    @classmethod
    def conversation(cls, dm_id: int) -> NotificationTarget:
        return cls(TARGET_TYPE_CONVERSATION, dm_id)

    @property
    def link(self) -> str:
        """Render the client deep link for this target."""
        if self.target_type == TARGET_TYPE_ROOM:
            return f"/chat?room={self.target_id}"
        return f"/chat?dm={self.target_id}"

    @classmethod
    def from_link(cls, link: str | None) -> NotificationTarget | None:
        """Recover a target from a link written without typed columns."""
        if not link:
            return None
        match = _ROOM_LINK_RE.search(link)
        if match:
            return cls.room(int(match.group(1)))
        match = _DM_LINK_RE.search(link)
        if match:
            return cls.conversation(int(match.group(1)))
        return None

    @classmethod
    def of(cls, notification: Notification) -> NotificationTarget | None:
        """Return the typed target of a stored notification, if any."""
        if notification.target_type and notification.target_id is not None:
            return cls(notification.target_type, notification.target_id)
        return cls.from_link(notification.link)


class NotificationSink:
    """Writes notification rows in their own transaction."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def create(
        self,
        *,
        title: str,
        description: str | None,
        kind: str,
        target: NotificationTarget | None = None,
        addressee: str | None = None,
    ) -> Notification | None:
        """Insert a notification, returning ``None`` if the store rejected it.

        Callers must have committed their primary write first; a failure here
        rolls back only the notification.
        """
        notification = Notification(
            title=title,
            description=description,
            link=target.link if target else None,
            kind=kind,
            target_type=target.target_type if target else None,
            target_id=target.target_id if target else None,
            user_email=addressee,
        )
        try:
            self.db.add(notification)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning("Dropping %s notification for %s: %s", kind, addressee, exc)
            return None
        return notification
