# src/parlor/models/room.py
"""Models for public chat rooms and per-user read markers."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from parlor.db.session import Base
from parlor.db.time import utcnow


class ChatRoom(Base):
    """Named public channel.

    Deactivated rooms drop out of the directory but their messages stay
    addressable by id.
    """

    __tablename__ = "chat_room"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    topic: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class ChatRoomRead(Base):
    """Last time a user viewed a room."""

    __tablename__ = "chat_room_read"

    # Composite primary key keeps a single marker per (user, room).
    user_email: Mapped[str] = mapped_column(Text, primary_key=True)
    room_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("chat_room.id", ondelete="CASCADE"),
        primary_key=True,
    )
    last_read_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
