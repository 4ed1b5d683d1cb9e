"""User lookup schemas used for mention autocomplete."""

from pydantic import BaseModel, ConfigDict


class UserSearchResult(BaseModel):
    """Public profile fields of a matching user."""

    username: str
    email: str
    profile_picture_url: str | None = None
    user_role: str | None = None

    model_config = ConfigDict(from_attributes=True)


class UserSearchResponse(BaseModel):
    """Users matching a username fragment."""

    users: list[UserSearchResult]
