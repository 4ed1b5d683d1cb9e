"""Token helpers for the bearer identity issued by the session layer."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

from jose import jwt

from parlor.core.settings import settings
from parlor.db.time import utcnow


def create_access_token(
    email: str,
    username: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed token carrying the caller's email and display name.

    The session layer owns token issuance in production; this helper signs
    tokens the same way for scripts and tests.
    """
    claims: dict[str, Any] = {"sub": email}
    if username:
        claims["name"] = username
    if expires_delta is not None:
        claims["exp"] = utcnow() + expires_delta
    return jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and verify a bearer token, raising ``JWTError`` when invalid."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
