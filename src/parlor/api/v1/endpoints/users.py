"""User lookup endpoint backing mention autocomplete."""

from __future__ import annotations

from fastapi import APIRouter, Query

from parlor.schemas.user import UserSearchResponse, UserSearchResult
from parlor.services.users import search_users

from ..dependencies import CallerDep, SessionDep

router = APIRouter(prefix="/chat/users", tags=["users"])


@router.get("", response_model=UserSearchResponse)
def find_users(
    caller: CallerDep,
    db: SessionDep,
    q: str = Query("", description="Username fragment"),
) -> UserSearchResponse:
    """Return verified users whose username contains ``q``."""
    return UserSearchResponse(
        users=[UserSearchResult.model_validate(user) for user in search_users(db, q)]
    )
