"""Post, like and comment API routes."""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import User
from ..schemas import (
    ChangeKind,
    CommentCreate,
    CommentListResponse,
    CommentResponse,
    CommentUpdate,
    LikeStateResponse,
    PostPageResponse,
    PostResponse,
    PostUpdateRequest,
)
from ..services import (
    create_post_comment,
    create_post_record,
    delete_post_comment,
    delete_post_record,
    get_current_user,
    list_post_comments,
    list_post_page,
    publish_change,
    require_member,
    set_like_state,
    update_post_comment,
    update_post_record,
)
from ..services.post_service import MAX_PAGE_SIZE

router = APIRouter(prefix="/posts", tags=["posts"])
comments_router = APIRouter(prefix="/comments", tags=["comments"])


@router.get("", response_model=PostPageResponse)
async def list_posts(
    page: int = Query(0, ge=0),
    page_size: Optional[int] = Query(None, ge=1, le=MAX_PAGE_SIZE),
    author_id: Optional[UUID] = Query(None),
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> PostPageResponse:
    payload = list_post_page(db, page=page, page_size=page_size, author_id=author_id, viewer_id=current_user.id)
    return PostPageResponse(**payload)


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    content: str = Form(""),
    image: UploadFile | None = File(None),
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> PostResponse:
    record = await create_post_record(db, author=current_user, content=content, image=image)
    response = PostResponse(**record)
    await publish_change("posts", ChangeKind.INSERT, response.model_dump(mode="json"))
    return response


@router.patch("/{post_id}", response_model=PostResponse)
async def edit_post(
    post_id: UUID,
    payload: PostUpdateRequest,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> PostResponse:
    record = update_post_record(db, post_id=post_id, requester=current_user, content=payload.content)
    response = PostResponse(**record)
    await publish_change("posts", ChangeKind.UPDATE, response.model_dump(mode="json"))
    return response


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_post(
    post_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> Response:
    snapshot = delete_post_record(db, post_id=post_id, requester=current_user)
    await publish_change("posts", ChangeKind.DELETE, snapshot)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


async def _apply_like(db: Session, post_id: UUID, user: User, should_like: bool) -> LikeStateResponse:
    state = set_like_state(db, post_id=post_id, user=user, should_like=should_like)
    changed = state.pop("changed")
    response = LikeStateResponse(**state)
    if changed:
        kind = ChangeKind.INSERT if should_like else ChangeKind.DELETE
        await publish_change("likes", kind, response.model_dump(mode="json"))
    return response


@router.put("/{post_id}/like", response_model=LikeStateResponse)
async def like_post(
    post_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(require_member),
) -> LikeStateResponse:
    return await _apply_like(db, post_id, current_user, True)


@router.delete("/{post_id}/like", response_model=LikeStateResponse)
async def unlike_post(
    post_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(require_member),
) -> LikeStateResponse:
    return await _apply_like(db, post_id, current_user, False)


@router.get("/{post_id}/comments", response_model=CommentListResponse)
async def list_comments(
    post_id: UUID,
    db: Session = Depends(get_session),
    _: User = Depends(get_current_user),
) -> CommentListResponse:
    return CommentListResponse(items=[CommentResponse(**item) for item in list_post_comments(db, post_id=post_id)])


@router.post("/{post_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def add_comment(
    post_id: UUID,
    payload: CommentCreate,
    db: Session = Depends(get_session),
    current_user: User = Depends(require_member),
) -> CommentResponse:
    response = CommentResponse(**create_post_comment(db, post_id=post_id, author=current_user, content=payload.content))
    await publish_change("comments", ChangeKind.INSERT, response.model_dump(mode="json"))
    return response


@comments_router.patch("/{comment_id}", response_model=CommentResponse)
async def edit_comment(
    comment_id: UUID,
    payload: CommentUpdate,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> CommentResponse:
    record = update_post_comment(db, comment_id=comment_id, requester=current_user, content=payload.content)
    response = CommentResponse(**record)
    await publish_change("comments", ChangeKind.UPDATE, response.model_dump(mode="json"))
    return response


@comments_router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_comment(
    comment_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> Response:
    snapshot = delete_post_comment(db, comment_id=comment_id, requester=current_user)
    await publish_change("comments", ChangeKind.DELETE, snapshot)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router", "comments_router"]
