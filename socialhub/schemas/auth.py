"""Pydantic schemas for authentication endpoints."""
from __future__ import annotations

import re
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from ..constants import DISPLAY_NAME_PATTERN, RESERVED_DISPLAY_NAMES

_DISPLAY_NAME_RE = re.compile(DISPLAY_NAME_PATTERN)


def check_display_name(value: str) -> str:
    """Strip ``value`` and reject names that cannot be used as a profile URL segment."""

    stripped = value.strip()
    if not stripped:
        raise ValueError("display_name cannot be blank")
    if not _DISPLAY_NAME_RE.match(stripped):
        raise ValueError("display_name may only use letters, digits, '_', '.' and '-'")
    if stripped.lower() in RESERVED_DISPLAY_NAMES:
        raise ValueError(f"display_name '{stripped}' is reserved")
    return stripped


class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    display_name: str = Field(..., min_length=1, max_length=150)
    first_name: str = Field(default="", max_length=100)
    last_name: str = Field(default="", max_length=100)

    @field_validator("display_name")
    @classmethod
    def _validate_display_name(cls, value: str) -> str:
        return check_display_name(value)


class SignupResponse(BaseModel):
    user_id: UUID
    display_name: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class AuthResponse(BaseModel):
    access_token: str
    user_id: UUID
    display_name: str
    is_guest: bool = False
    token_type: str = "bearer"


class SessionResponse(BaseModel):
    authenticated: bool
    user_id: UUID | None = None
    display_name: str | None = None
    is_guest: bool = False


__all__ = ["SignupRequest", "SignupResponse", "LoginRequest", "AuthResponse", "SessionResponse", "check_display_name"]
