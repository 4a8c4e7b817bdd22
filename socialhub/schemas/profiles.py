"""Schemas for profile endpoints."""
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .auth import check_display_name


class UserSummary(BaseModel):
    """Minimal user card used by search results, follow lists and conversations."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    display_name: str
    avatar_key: str | None = None


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    display_name: str
    full_name: str | None = None
    bio: str | None = None
    avatar_key: str | None = None
    email: str
    is_guest: bool = False
    created_at: datetime


class ProfileUpdateRequest(BaseModel):
    display_name: str | None = Field(default=None, min_length=1, max_length=150)
    full_name: str | None = Field(default=None, max_length=255)
    bio: str | None = Field(default=None, max_length=1000)

    @field_validator("display_name")
    @classmethod
    def _validate_display_name(cls, value: str | None) -> str | None:
        # A blank name leaves the current one in place.
        if value is None or not value.strip():
            return value
        return check_display_name(value)


class UserListResponse(BaseModel):
    items: list[UserSummary]


__all__ = ["UserSummary", "ProfileResponse", "ProfileUpdateRequest", "UserListResponse"]
