"""Messaging API routes."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_session
from ..errors import NotFoundError
from ..models import Message, User
from ..schemas import (
    ChangeKind,
    ConversationListResponse,
    ConversationResponse,
    MessageResponse,
    MessageSendRequest,
    MessageUpdateRequest,
    UserSummary,
)
from ..services import (
    delete_message,
    get_current_user,
    list_conversation,
    list_conversation_partners,
    publish_change,
    send_message,
    update_message,
)

router = APIRouter(prefix="/messages", tags=["messages"])


async def _broadcast_message(message: Message, kind: ChangeKind) -> MessageResponse:
    response = MessageResponse.model_validate(message)
    await publish_change("messages", kind, response.model_dump(mode="json"))
    return response


@router.get("/conversations", response_model=ConversationListResponse)
async def list_conversations_endpoint(
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> ConversationListResponse:
    has_conversations, users = list_conversation_partners(db, user=current_user)
    return ConversationListResponse(
        has_conversations=has_conversations,
        users=[UserSummary.model_validate(user) for user in users],
    )


@router.get("/with/{user_id}", response_model=ConversationResponse)
async def conversation_endpoint(
    user_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> ConversationResponse:
    peer = db.get(User, user_id)
    if peer is None:
        raise NotFoundError("User not found")
    messages = list_conversation(db, user_id=current_user.id, peer_id=user_id)
    return ConversationResponse(
        peer=UserSummary.model_validate(peer),
        messages=[MessageResponse.model_validate(message) for message in messages],
    )


@router.post("", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message_endpoint(
    payload: MessageSendRequest,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    record = send_message(db, sender=current_user, receiver_id=payload.receiver_id, content=payload.content)
    return await _broadcast_message(record, ChangeKind.INSERT)


@router.patch("/{message_id}", response_model=MessageResponse)
async def update_message_endpoint(
    message_id: UUID,
    payload: MessageUpdateRequest,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    record = update_message(db, message_id=message_id, requester=current_user, content=payload.content)
    return await _broadcast_message(record, ChangeKind.UPDATE)


@router.delete("/{message_id}", response_model=MessageResponse)
async def delete_message_endpoint(
    message_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    record = delete_message(db, message_id=message_id, requester=current_user)
    return await _broadcast_message(record, ChangeKind.DELETE)


__all__ = ["router"]
