# src/parlor/models/message.py
"""Models for room messages, their attachments and reactions."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, foreign, mapped_column, relationship

from parlor.db.session import Base
from parlor.db.time import utcnow

from .user import User


class ChatMessage(Base):
    """Append-only entry in a room ledger.

    ``username`` is frozen at send time so renames do not rewrite history.
    """

    __tablename__ = "chat_message"
    __table_args__ = (Index("ix_chat_message_room_id_id", "room_id", "id"),)

    # Store-assigned, strictly increasing; doubles as the pagination cursor.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    room_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("chat_room.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_email: Mapped[str] = mapped_column(Text, nullable=False)
    username: Mapped[str] = mapped_column(Text, nullable=False)
    message_text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    files: Mapped[list[ChatMessageFile]] = relationship(
        "ChatMessageFile",
        back_populates="message",
        cascade="all, delete-orphan",
        order_by="ChatMessageFile.id",
    )
    reactions: Mapped[list[ChatMessageReaction]] = relationship(
        "ChatMessageReaction",
        back_populates="message",
        cascade="all, delete-orphan",
        order_by="ChatMessageReaction.id",
    )
    author: Mapped[User | None] = relationship(
        User,
        primaryjoin=lambda: foreign(ChatMessage.user_email) == User.email,
        viewonly=True,
        uselist=False,
    )


class ChatMessageFile(Base):
    """File attached to a message; bytes live in external object storage."""

    __tablename__ = "chat_message_file"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    message_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("chat_message.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    file_url: Mapped[str] = mapped_column(Text, nullable=False)
    file_name: Mapped[str] = mapped_column(Text, nullable=False)
    file_type: Mapped[str] = mapped_column(Text, nullable=False)
    file_size: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    message: Mapped[ChatMessage] = relationship("ChatMessage", back_populates="files")


class ChatMessageReaction(Base):
    """Presence of a row means the user reacted to the message with the emoji."""

    __tablename__ = "chat_message_reaction"
    __table_args__ = (
        UniqueConstraint(
            "message_id",
            "user_email",
            "emoji",
            name="uq_chat_message_reaction_triple",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    message_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("chat_message.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_email: Mapped[str] = mapped_column(Text, nullable=False)
    emoji: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    message: Mapped[ChatMessage] = relationship("ChatMessage", back_populates="reactions")
