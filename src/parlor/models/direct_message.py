# src/parlor/models/direct_message.py
"""Models describing direct conversations between two users."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from parlor.db.session import Base
from parlor.db.time import utcnow


def pair_key_for(first_email: str, second_email: str) -> str:
    """Return the order-independent key identifying a pair of users."""
    low, high = sorted((first_email, second_email))
    return f"{low}\n{high}"


class DirectConversation(Base):
    """Private thread between exactly two participants."""

    __tablename__ = "dm_conversation"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Unique so that concurrent first contacts cannot create two threads.
    pair_key: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    participants: Mapped[list[DirectParticipant]] = relationship(
        "DirectParticipant",
        back_populates="conversation",
        cascade="all, delete-orphan",
    )


class DirectParticipant(Base):
    """Membership of one user in a direct conversation."""

    __tablename__ = "dm_participant"

    dm_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("dm_conversation.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_email: Mapped[str] = mapped_column(Text, primary_key=True, index=True)

    conversation: Mapped[DirectConversation] = relationship(
        "DirectConversation",
        back_populates="participants",
    )


class DirectMessage(Base):
    """Message exchanged inside a direct conversation."""

    __tablename__ = "dm_message"
    __table_args__ = (Index("ix_dm_message_dm_id_created_at", "dm_id", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    dm_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("dm_conversation.id", ondelete="CASCADE"),
        nullable=False,
    )
    sender_email: Mapped[str] = mapped_column(Text, nullable=False)
    username: Mapped[str] = mapped_column(Text, nullable=False)
    message_text: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
