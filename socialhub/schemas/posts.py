"""Pydantic schemas for posts, likes and comments."""
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class PostAuthor(BaseModel):
    display_name: str
    avatar_key: str | None = None


class PostResponse(BaseModel):
    """Serialized post with counts computed at read time."""

    id: UUID
    user_id: UUID
    content: str
    image_key: str | None = None
    created_at: datetime
    author: PostAuthor
    like_count: int = 0
    comment_count: int = 0
    viewer_has_liked: bool = False


class PostPageResponse(BaseModel):
    """One page of the reverse-chronological feed."""

    items: list[PostResponse]
    page: int
    page_size: int
    has_more: bool


class PostUpdateRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)


class LikeStateResponse(BaseModel):
    post_id: UUID
    user_id: UUID
    liked: bool


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)


class CommentUpdate(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)


class CommentResponse(BaseModel):
    id: UUID
    post_id: UUID
    user_id: UUID
    content: str
    created_at: datetime
    author: PostAuthor | None = None


class CommentListResponse(BaseModel):
    items: list[CommentResponse]


__all__ = [
    "PostAuthor",
    "PostResponse",
    "PostPageResponse",
    "PostUpdateRequest",
    "LikeStateResponse",
    "CommentCreate",
    "CommentUpdate",
    "CommentResponse",
    "CommentListResponse",
]
