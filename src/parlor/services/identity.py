"""Caller identity threaded explicitly into every chat operation."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from parlor.core.settings import settings
from parlor.models import User


@dataclass(frozen=True)
class Caller:
    """Authenticated user on whose behalf an operation runs."""

    email: str
    username: str
    is_moderator: bool = False


def fallback_username(email: str) -> str:
    """Derive a display name from an email when no user row is known."""
    return email.split("@")[0] or "?"


def has_moderator_capability(user: User | None) -> bool:
    """Return True when the user's role or username grants moderation."""
    if user is None:
        return False
    if user.user_role and user.user_role in settings.chat_moderator_roles:
        return True
    return user.username in settings.chat_moderator_usernames


def resolve_caller(db: Session, email: str, display_name: str | None = None) -> Caller:
    """Build a ``Caller`` from token claims and the matching user row, if any."""
    user = db.query(User).filter(User.email == email).first()
    username = display_name or (user.username if user else None) or fallback_username(email)
    return Caller(email=email, username=username, is_moderator=has_moderator_capability(user))
