"""Error taxonomy shared by the chat services.

Every service raises one of these; the API layer renders them as
``{"error": <kind>, "detail": <message>}`` with the matching status code.
"""

from __future__ import annotations

from fastapi import status


class ChatError(RuntimeError):
    """Base exception for chat failures surfaced to clients."""

    kind = "internal"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class Unauthorized(ChatError):
    """Raised when the caller identity is missing or invalid."""

    kind = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(ChatError):
    """Raised when an authenticated caller is not permitted to act."""

    kind = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(ChatError):
    """Raised when a room, message or conversation does not exist."""

    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ValidationError(ChatError):
    """Raised for malformed input that passed request parsing."""

    kind = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST


class Internal(ChatError):
    """Raised when the store fails mid-operation and the write was rolled back."""

    kind = "internal"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
