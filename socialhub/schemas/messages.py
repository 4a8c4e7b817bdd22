"""Schemas used by messaging endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import List
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .profiles import UserSummary


class MessageSendRequest(BaseModel):
    receiver_id: UUID
    content: str = Field(..., min_length=1, max_length=2000)


class MessageUpdateRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    sender_id: UUID
    receiver_id: UUID
    content: str
    created_at: datetime


class ConversationResponse(BaseModel):
    peer: UserSummary
    messages: List[MessageResponse]


class ConversationListResponse(BaseModel):
    """Partners the viewer has exchanged messages with, or suggestions when there are none."""

    has_conversations: bool
    users: List[UserSummary]


__all__ = [
    "MessageSendRequest",
    "MessageUpdateRequest",
    "MessageResponse",
    "ConversationResponse",
    "ConversationListResponse",
]
