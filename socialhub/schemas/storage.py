"""Schemas for object storage helpers."""
from __future__ import annotations

from pydantic import BaseModel, Field


class SignedUrlRequest(BaseModel):
    bucket: str
    key: str = Field(..., min_length=1)


class SignedUrlResponse(BaseModel):
    bucket: str
    key: str
    signed_url: str
    expires_in: int


__all__ = ["SignedUrlRequest", "SignedUrlResponse"]
