"""User lookup for mention autocomplete."""

from __future__ import annotations

from sqlalchemy.orm import Session

from parlor.core.settings import settings
from parlor.models import User


def search_users(db: Session, query: str | None) -> list[User]:
    """Return verified users whose username contains ``query``, case-insensitively."""
    needle = (query or "").strip()
    if not needle:
        return []
    escaped = needle.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return (
        db.query(User)
        .filter(
            User.username.ilike(f"%{escaped}%", escape="\\"),
            User.verified.is_(True),
        )
        .order_by(User.username)
        .limit(settings.chat_user_search_limit)
        .all()
    )
