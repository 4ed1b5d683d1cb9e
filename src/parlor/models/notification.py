# src/parlor/models/notification.py
"""Generic notification inbox rows."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from parlor.db.session import Base
from parlor.db.time import utcnow

NOTIFICATION_KIND_CHAT_MENTION = "chat_mention"
NOTIFICATION_KIND_DM = "dm"

TARGET_TYPE_ROOM = "room"
TARGET_TYPE_CONVERSATION = "conversation"


class Notification(Base):
    """Inbox entry addressed to one user, or broadcast when ``user_email`` is null.

    ``target_type``/``target_id`` carry the typed destination; ``link`` is the
    rendered deep link kept for clients and for rows written by other code.
    """

    __tablename__ = "notification"
    __table_args__ = (Index("ix_notification_user_email_type", "user_email", "type"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    link: Mapped[str | None] = mapped_column(Text, nullable=True)
    kind: Mapped[str] = mapped_column("type", Text, nullable=False)
    target_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    target_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    user_email: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
