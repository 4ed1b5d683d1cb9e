"""Direct-message directory: canonical conversations between two users."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, aliased

from parlor.core.settings import settings
from parlor.db.time import as_utc
from parlor.models import DirectConversation, DirectMessage, DirectParticipant, User
from parlor.models.direct_message import pair_key_for
from parlor.models.notification import NOTIFICATION_KIND_DM
from parlor.schemas.direct_message import DirectUser

from .errors import Forbidden, Internal, NotFound, ValidationError
from .identity import Caller, fallback_username
from .notifications import NotificationSink, NotificationTarget
from .sanitize import preview, sanitize_body

logger = logging.getLogger(__name__)


@dataclass
class ConversationView:
    """Conversation id with the other participant, as seen by the caller."""

    dm_id: int
    other_user: DirectUser


def public_identity(db: Session, email: str) -> DirectUser:
    """Return the email and current username of a user."""
    username = db.query(User.username).filter(User.email == email).scalar()
    return DirectUser(email=email, username=username or fallback_username(email))


def _find_conversation_id(db: Session, me: str, other: str) -> int | None:
    mine = aliased(DirectParticipant)
    theirs = aliased(DirectParticipant)
    row = (
        db.query(mine.dm_id)
        .join(theirs, theirs.dm_id == mine.dm_id)
        .filter(mine.user_email == me, theirs.user_email == other)
        .order_by(mine.dm_id)
        .first()
    )
    return row[0] if row else None


def _participant_emails(db: Session, dm_id: int) -> list[str]:
    return [
        email
        for (email,) in db.query(DirectParticipant.user_email)
        .filter(DirectParticipant.dm_id == dm_id)
        .all()
    ]


def _other_participant(db: Session, dm_id: int, caller: Caller) -> str:
    """Return the other participant's email, enforcing caller membership."""
    emails = _participant_emails(db, dm_id)
    if not emails:
        raise NotFound("Conversation not found")
    if caller.email not in emails:
        raise Forbidden("Not a participant")
    other = next((email for email in emails if email != caller.email), None)
    if other is None:
        raise ValidationError("Invalid conversation")
    return other


def conversation_history(db: Session, dm_id: int) -> list[DirectMessage]:
    """Return every message of the conversation, oldest first."""
    return (
        db.query(DirectMessage)
        .filter(DirectMessage.dm_id == dm_id)
        .order_by(DirectMessage.created_at, DirectMessage.id)
        .all()
    )


def get_or_create_conversation(
    db: Session,
    *,
    caller: Caller,
    other_email: str,
) -> tuple[ConversationView, list[DirectMessage]]:
    """Return the caller's conversation with ``other_email``, creating it on first contact.

    The conversation row and both participant rows are committed together.
    If a concurrent request created the pair first, its conversation wins.

    Returns:
        The conversation view and its full history, oldest first.

    Raises:
        ValidationError: If the other user is empty or the caller
    """
    other_email = (other_email or "").strip()
    if not other_email or other_email == caller.email:
        raise ValidationError("Invalid user")

    dm_id = _find_conversation_id(db, caller.email, other_email)
    if dm_id is None:
        conversation = DirectConversation(pair_key=pair_key_for(caller.email, other_email))
        conversation.participants = [
            DirectParticipant(user_email=caller.email),
            DirectParticipant(user_email=other_email),
        ]
        try:
            db.add(conversation)
            db.commit()
            dm_id = conversation.id
            logger.info("Created conversation %s between %s and %s", dm_id, caller.email, other_email)
        except IntegrityError:
            db.rollback()
            dm_id = _find_conversation_id(db, caller.email, other_email)
            if dm_id is None:
                raise Internal("Failed to get conversation") from None
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Failed to create conversation with %s", other_email)
            raise Internal("Failed to get conversation") from exc

    view = ConversationView(dm_id=dm_id, other_user=public_identity(db, other_email))
    return view, conversation_history(db, dm_id)


def get_conversation(db: Session, *, dm_id: int, caller: Caller) -> ConversationView:
    """Return conversation info with the other participant."""
    other = _other_participant(db, dm_id, caller)
    return ConversationView(dm_id=dm_id, other_user=public_identity(db, other))


def list_conversation_messages(db: Session, *, dm_id: int, caller: Caller) -> list[DirectMessage]:
    """Return the full history of a conversation the caller participates in."""
    _other_participant(db, dm_id, caller)
    return conversation_history(db, dm_id)


def send_direct_message(
    db: Session,
    *,
    dm_id: int,
    caller: Caller,
    message_text: str | None,
) -> DirectMessage:
    """Persist a direct message and notify the recipient.

    Raises:
        ValidationError: If the body is empty after trimming
        NotFound: If the conversation does not exist
        Forbidden: If the caller is not a participant
        Internal: If the store rejected the write
    """
    body = sanitize_body(message_text)
    if not body:
        raise ValidationError("Message text required")
    recipient = _other_participant(db, dm_id, caller)

    message = DirectMessage(
        dm_id=dm_id,
        sender_email=caller.email,
        username=caller.username,
        message_text=body,
    )
    try:
        db.add(message)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to save direct message in conversation %s", dm_id)
        raise Internal("Failed to send message") from exc
    db.refresh(message)

    NotificationSink(db).create(
        title=f"{caller.username} sent you a message",
        description=preview(body, settings.chat_notification_preview_length),
        kind=NOTIFICATION_KIND_DM,
        target=NotificationTarget.conversation(dm_id),
        addressee=recipient,
    )
    return message


def list_conversations(
    db: Session,
    *,
    caller: Caller,
) -> list[tuple[ConversationView, DirectMessage | None]]:
    """List the caller's conversations with their latest message.

    Sorted by latest message time, newest first; conversations without
    messages come last.
    """
    dm_ids = [
        dm_id
        for (dm_id,) in db.query(DirectParticipant.dm_id)
        .filter(DirectParticipant.user_email == caller.email)
        .all()
    ]
    if not dm_ids:
        return []

    other_by_dm = {
        dm_id: email
        for dm_id, email in db.query(DirectParticipant.dm_id, DirectParticipant.user_email)
        .filter(
            DirectParticipant.dm_id.in_(dm_ids),
            DirectParticipant.user_email != caller.email,
        )
        .all()
    }

    # Highest id per conversation is its most recent message.
    latest_ids = (
        select(func.max(DirectMessage.id))
        .where(DirectMessage.dm_id.in_(dm_ids))
        .group_by(DirectMessage.dm_id)
    )
    last_by_dm = {
        message.dm_id: message
        for message in db.query(DirectMessage).filter(DirectMessage.id.in_(latest_ids))
    }

    usernames = dict(
        db.query(User.email, User.username)
        .filter(User.email.in_(list(other_by_dm.values())))
        .all()
    )

    rows: list[tuple[ConversationView, DirectMessage | None]] = []
    for dm_id in dm_ids:
        other_email = other_by_dm.get(dm_id)
        if other_email is None:
            continue
        other = DirectUser(
            email=other_email,
            username=usernames.get(other_email) or fallback_username(other_email),
        )
        rows.append((ConversationView(dm_id=dm_id, other_user=other), last_by_dm.get(dm_id)))

    with_messages = [row for row in rows if row[1] is not None]
    without_messages = [row for row in rows if row[1] is None]
    with_messages.sort(key=lambda row: (as_utc(row[1].created_at), row[1].id), reverse=True)
    return with_messages + without_messages
