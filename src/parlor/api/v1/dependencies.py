"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from parlor.core.security import decode_access_token
from parlor.db.session import SessionLocal, get_db
from parlor.services.errors import Unauthorized
from parlor.services.identity import Caller, resolve_caller
from parlor.services.live_updates import SessionFactory

# Missing credentials are reported as a chat error, not FastAPI's default 403.
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_caller(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: SessionDep,
) -> Caller:
    """Resolve the authenticated caller from the bearer token.

    The token's ``sub`` claim carries the caller's email and the optional
    ``name`` claim its display name.

    Args:
        credentials: HTTP Bearer token credentials, if any
        db: Database session

    Returns:
        Caller identity for the request

    Raises:
        Unauthorized: If the token is missing, invalid or has no subject
    """
    if credentials is None or not credentials.credentials:
        raise Unauthorized("Authentication required")
    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError as err:
        raise Unauthorized("Could not validate credentials") from err

    email = payload.get("sub")
    if not isinstance(email, str) or not email.strip():
        raise Unauthorized("Could not validate credentials")
    name = payload.get("name")
    return resolve_caller(db, email.strip(), name if isinstance(name, str) else None)


def get_session_factory() -> SessionFactory:
    """Return the session factory used by long-lived streaming work."""
    return SessionLocal


CallerDep = Annotated[Caller, Depends(get_caller)]
SessionFactoryDep = Annotated[SessionFactory, Depends(get_session_factory)]
