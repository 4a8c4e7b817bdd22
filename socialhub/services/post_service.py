"""Business logic for posts, likes and comments."""
from __future__ import annotations

import logging
from typing import Any, cast
from uuid import UUID

from fastapi import UploadFile
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..errors import NotFoundError, PermissionDeniedError, QueryError, SocialError, ValidationError
from ..models import Comment, Like, Post, User
from .storage_service import remove_objects, upload_object

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 50


def _author_payload(user: User | None) -> dict[str, Any] | None:
    if user is None:
        return None
    return {"display_name": user.display_name, "avatar_key": user.avatar_key}


def _get_post_or_404(db: Session, post_id: UUID) -> Post:
    post = db.get(Post, post_id)
    if post is None:
        raise NotFoundError("Post not found")
    return post


def _get_comment_or_404(db: Session, comment_id: UUID) -> Comment:
    comment = db.get(Comment, comment_id)
    if comment is None:
        raise NotFoundError("Comment not found")
    return comment


def _commit(db: Session, failure_detail: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(failure_detail)
        raise QueryError(failure_detail) from exc


def _clean_text(value: str | None, field: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field} cannot be empty")
    return text


def _post_record(
    post: Post,
    author: User,
    *,
    like_count: int = 0,
    comment_count: int = 0,
    viewer_has_liked: bool = False,
) -> dict[str, Any]:
    return {
        "id": post.id,
        "user_id": post.user_id,
        "content": post.content,
        "image_key": post.image_key,
        "created_at": post.created_at,
        "author": _author_payload(author),
        "like_count": like_count,
        "comment_count": comment_count,
        "viewer_has_liked": viewer_has_liked,
    }


def _engagement_counts(db: Session, *, post_id: UUID, viewer_id: UUID | None) -> dict[str, Any]:
    like_count = db.scalar(select(func.count()).select_from(Like).where(Like.post_id == post_id)) or 0
    comment_count = db.scalar(select(func.count(Comment.id)).where(Comment.post_id == post_id)) or 0
    viewer_has_liked = viewer_id is not None and db.get(Like, (viewer_id, post_id)) is not None
    return {
        "like_count": int(like_count),
        "comment_count": int(comment_count),
        "viewer_has_liked": viewer_has_liked,
    }


async def create_post_record(
    db: Session,
    *,
    author: User,
    content: str | None,
    image: UploadFile | None = None,
) -> dict[str, Any]:
    """Create a post, uploading the optional image to the post image bucket first."""

    text = (content or "").strip()
    if not text and image is None:
        raise ValidationError("A post needs text or an image")

    image_key: str | None = None
    if image is not None:
        stored = await upload_object(image, bucket=get_settings().post_images_bucket, owner_id=cast(UUID, author.id))
        image_key = stored.key

    post = Post(user_id=author.id, content=text, image_key=image_key)
    db.add(post)
    _commit(db, "Error creating post")
    db.refresh(post)
    return _post_record(post, author)


def list_post_page(
    db: Session,
    *,
    page: int,
    page_size: int | None = None,
    author_id: UUID | None = None,
    viewer_id: UUID | None = None,
) -> dict[str, Any]:
    """Return one page of posts, newest first, with like/comment counts and the viewer's like flag."""

    size = page_size or get_settings().feed_page_size
    if page < 0:
        raise ValidationError("page must be zero or greater")
    if size < 1 or size > MAX_PAGE_SIZE:
        raise ValidationError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")

    like_count_col = select(func.count()).select_from(Like).where(Like.post_id == Post.id).scalar_subquery()
    comment_count_col = select(func.count(Comment.id)).where(Comment.post_id == Post.id).scalar_subquery()
    columns: list[Any] = [Post, User, like_count_col, comment_count_col]
    if viewer_id is not None:
        columns.append(
            select(func.count())
            .select_from(Like)
            .where(Like.post_id == Post.id, Like.user_id == viewer_id)
            .scalar_subquery()
        )

    statement = select(*columns).join(User, Post.user_id == User.id)
    if author_id is not None:
        statement = statement.where(Post.user_id == author_id)
    statement = statement.order_by(Post.created_at.desc(), Post.id.desc()).offset(page * size).limit(size)

    try:
        rows = db.execute(statement).all()
    except SQLAlchemyError as exc:
        logger.exception("Error fetching posts page %d", page)
        raise QueryError("Error fetching posts") from exc

    items: list[dict[str, Any]] = []
    for row in rows:
        post, author, like_count, comment_count = row[0], row[1], row[2], row[3]
        viewer_like = row[4] if viewer_id is not None else 0
        items.append(
            _post_record(
                post,
                author,
                like_count=int(like_count or 0),
                comment_count=int(comment_count or 0),
                viewer_has_liked=bool(viewer_like),
            )
        )

    return {"items": items, "page": page, "page_size": size, "has_more": len(items) == size}


def update_post_record(db: Session, *, post_id: UUID, requester: User, content: str) -> dict[str, Any]:
    post = _get_post_or_404(db, post_id)
    if post.user_id != requester.id:
        raise PermissionDeniedError("Not allowed to edit this post")

    post.content = _clean_text(content, "Post content")
    _commit(db, "Error updating post")
    db.refresh(post)
    return _post_record(post, requester, **_engagement_counts(db, post_id=post.id, viewer_id=requester.id))


def delete_post_record(db: Session, *, post_id: UUID, requester: User) -> dict[str, Any]:
    """Delete an author's own post; the stored image is removed best-effort afterwards."""

    post = _get_post_or_404(db, post_id)
    if post.user_id != requester.id:
        raise PermissionDeniedError("Not allowed to delete this post")

    snapshot = {"id": post.id, "user_id": post.user_id}
    image_key = post.image_key
    db.delete(post)
    _commit(db, "Error deleting post")

    if image_key:
        try:
            remove_objects(get_settings().post_images_bucket, [image_key])
        except SocialError:
            logger.warning("Post %s deleted but its image %s could not be removed", snapshot["id"], image_key)
    return snapshot


def set_like_state(db: Session, *, post_id: UUID, user: User, should_like: bool) -> dict[str, Any]:
    """Make the (user, post) like membership match ``should_like``; repeats are no-ops.

    ``changed`` in the result reports whether the membership actually moved.
    """

    _get_post_or_404(db, post_id)
    user_id = cast(UUID, user.id)
    existing = db.get(Like, (user_id, post_id))
    changed = False

    if should_like and existing is None:
        db.add(Like(user_id=user_id, post_id=post_id))
        try:
            db.commit()
            changed = True
        except IntegrityError:
            # A concurrent request inserted the same pair first.
            db.rollback()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Error liking post %s", post_id)
            raise QueryError("Failed to update like") from exc
    elif not should_like and existing is not None:
        db.execute(delete(Like).where(Like.user_id == user_id, Like.post_id == post_id))
        _commit(db, "Failed to update like")
        changed = True

    return {"post_id": post_id, "user_id": user_id, "liked": should_like, "changed": changed}


def _comment_record(comment: Comment, author: User | None) -> dict[str, Any]:
    return {
        "id": comment.id,
        "post_id": comment.post_id,
        "user_id": comment.user_id,
        "content": comment.content,
        "created_at": comment.created_at,
        "author": _author_payload(author),
    }


def list_post_comments(db: Session, *, post_id: UUID) -> list[dict[str, Any]]:
    """Return the post's comments newest first, joined with their author."""

    _get_post_or_404(db, post_id)
    statement = (
        select(Comment, User)
        .join(User, Comment.user_id == User.id)
        .where(Comment.post_id == post_id)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
    )
    return [_comment_record(comment, author) for comment, author in db.execute(statement).all()]


def create_post_comment(db: Session, *, post_id: UUID, author: User, content: str) -> dict[str, Any]:
    post = _get_post_or_404(db, post_id)
    comment = Comment(post_id=post.id, user_id=author.id, content=_clean_text(content, "Comment"))
    db.add(comment)
    _commit(db, "Error creating comment")
    db.refresh(comment)
    return _comment_record(comment, author)


def update_post_comment(db: Session, *, comment_id: UUID, requester: User, content: str) -> dict[str, Any]:
    comment = _get_comment_or_404(db, comment_id)
    if comment.user_id != requester.id:
        raise PermissionDeniedError("Not allowed to edit this comment")
    comment.content = _clean_text(content, "Comment")
    _commit(db, "Error updating comment")
    db.refresh(comment)
    return _comment_record(comment, requester)


def delete_post_comment(db: Session, *, comment_id: UUID, requester: User) -> dict[str, Any]:
    comment = _get_comment_or_404(db, comment_id)
    if comment.user_id != requester.id:
        raise PermissionDeniedError("Not allowed to delete this comment")
    snapshot = {"id": comment.id, "post_id": comment.post_id, "user_id": comment.user_id}
    db.delete(comment)
    _commit(db, "Error deleting comment")
    return snapshot


__all__ = [
    "MAX_PAGE_SIZE",
    "create_post_record",
    "list_post_page",
    "update_post_record",
    "delete_post_record",
    "set_like_state",
    "list_post_comments",
    "create_post_comment",
    "update_post_comment",
    "delete_post_comment",
]
