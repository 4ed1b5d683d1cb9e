"""Direct message endpoints for the Parlor API."""

from __future__ import annotations

from fastapi import APIRouter, status

from parlor.models import DirectMessage
from parlor.schemas.direct_message import (
    ConversationInfo,
    ConversationListResponse,
    ConversationMessagesResponse,
    ConversationResponse,
    ConversationSummary,
    DirectMessageCreate,
    DirectMessageEnvelope,
    DirectMessageResponse,
)
from parlor.services import direct_messages as dms

from ..dependencies import CallerDep, SessionDep

router = APIRouter(prefix="/chat/dms", tags=["direct-messages"])


def _serialize(messages: list[DirectMessage]) -> list[DirectMessageResponse]:
    return [DirectMessageResponse.model_validate(message) for message in messages]


@router.get("", response_model=ConversationListResponse)
def list_conversations(caller: CallerDep, db: SessionDep) -> ConversationListResponse:
    """List the caller's conversations, most recently active first."""
    rows = dms.list_conversations(db, caller=caller)
    return ConversationListResponse(
        conversations=[
            ConversationSummary(
                dm_id=view.dm_id,
                other_user=view.other_user,
                last_message=(
                    DirectMessageResponse.model_validate(last) if last is not None else None
                ),
            )
            for view, last in rows
        ]
    )


@router.get("/with/{email}", response_model=ConversationResponse)
def conversation_with(email: str, caller: CallerDep, db: SessionDep) -> ConversationResponse:
    """Open the conversation with another user, creating it on first contact."""
    view, history = dms.get_or_create_conversation(db, caller=caller, other_email=email)
    return ConversationResponse(
        dm_id=view.dm_id,
        other_user=view.other_user,
        messages=_serialize(history),
    )


@router.get("/{dm_id}", response_model=ConversationInfo)
def get_conversation(dm_id: int, caller: CallerDep, db: SessionDep) -> ConversationInfo:
    """Return the conversation and its other participant."""
    view = dms.get_conversation(db, dm_id=dm_id, caller=caller)
    return ConversationInfo(dm_id=view.dm_id, other_user=view.other_user)


@router.get("/{dm_id}/messages", response_model=ConversationMessagesResponse)
def list_messages(
    dm_id: int,
    caller: CallerDep,
    db: SessionDep,
) -> ConversationMessagesResponse:
    """Return the conversation history, oldest first."""
    history = dms.list_conversation_messages(db, dm_id=dm_id, caller=caller)
    return ConversationMessagesResponse(messages=_serialize(history))


@router.post(
    "/{dm_id}/messages",
    response_model=DirectMessageEnvelope,
    status_code=status.HTTP_201_CREATED,
)
def send_message(
    dm_id: int,
    payload: DirectMessageCreate,
    caller: CallerDep,
    db: SessionDep,
) -> DirectMessageEnvelope:
    """Send a direct message to the other participant."""
    message = dms.send_direct_message(
        db,
        dm_id=dm_id,
        caller=caller,
        message_text=payload.message_text,
    )
    return DirectMessageEnvelope(message=DirectMessageResponse.model_validate(message))
