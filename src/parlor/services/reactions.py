"""Reaction toggle for room messages."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from parlor.core.settings import settings
from parlor.models import ChatMessage, ChatMessageReaction
from parlor.schemas.message import ReactionSummary

from .errors import Internal, NotFound, ValidationError
from .identity import Caller

logger = logging.getLogger(__name__)


def summarize_reactions(
    reactions: Iterable[ChatMessageReaction],
    viewer_email: str | None,
) -> list[ReactionSummary]:
    """Aggregate reaction rows into per-emoji counts for one viewer.

    Emojis appear in palette order, then any legacy emoji in first-seen order.
    Emojis with no reactions are omitted.
    """
    counts: dict[str, int] = {}
    reacted: set[str] = set()
    for reaction in reactions:
        counts[reaction.emoji] = counts.get(reaction.emoji, 0) + 1
        if viewer_email is not None and reaction.user_email == viewer_email:
            reacted.add(reaction.emoji)

    palette = [emoji for emoji in settings.chat_allowed_reactions if emoji in counts]
    extras = [emoji for emoji in counts if emoji not in settings.chat_allowed_reactions]
    return [
        ReactionSummary(emoji=emoji, count=counts[emoji], reacted=emoji in reacted)
        for emoji in palette + extras
    ]


def toggle_reaction(
    db: Session,
    *,
    room_id: int,
    message_id: int,
    caller: Caller,
    emoji: str,
) -> list[ReactionSummary]:
    """Add the caller's reaction if absent, remove it if present.

    Args:
        db: Database session
        room_id: Room the message must belong to
        message_id: Message being reacted to
        caller: Reacting user
        emoji: Emoji from the allowed palette

    Returns:
        The full reaction summary recomputed from the store.

    Raises:
        ValidationError: If the emoji is not in the palette
        NotFound: If the message does not exist in the room
    """
    emoji = (emoji or "").strip()
    if emoji not in settings.chat_allowed_reactions:
        raise ValidationError(
            "Invalid emoji. Allowed: " + ", ".join(settings.chat_allowed_reactions)
        )

    message = (
        db.query(ChatMessage)
        .filter(ChatMessage.id == message_id, ChatMessage.room_id == room_id)
        .first()
    )
    if message is None:
        raise NotFound("Message not found")

    existing = (
        db.query(ChatMessageReaction)
        .filter(
            ChatMessageReaction.message_id == message_id,
            ChatMessageReaction.user_email == caller.email,
            ChatMessageReaction.emoji == emoji,
        )
        .first()
    )

    try:
        if existing is not None:
            db.delete(existing)
        else:
            db.add(
                ChatMessageReaction(
                    message_id=message_id,
                    user_email=caller.email,
                    emoji=emoji,
                )
            )
        db.commit()
    except IntegrityError:
        # A concurrent toggle inserted the same triple first; it exists either way.
        db.rollback()
        logger.debug("Reaction %s on message %s already present", emoji, message_id)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to toggle reaction on message %s", message_id)
        raise Internal("Failed to update reaction") from exc

    reactions = (
        db.query(ChatMessageReaction)
        .filter(ChatMessageReaction.message_id == message_id)
        .order_by(ChatMessageReaction.id)
        .all()
    )
    return summarize_reactions(reactions, caller.email)
