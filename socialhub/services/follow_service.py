"""Business logic for follower relationships."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, cast
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import NotFoundError, QueryError, ValidationError
from ..models import Follow, User

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FollowStats:
    user_id: UUID
    followers_count: int
    following_count: int
    is_following: bool


def _get_user_or_404(db: Session, user_id: UUID) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def follow_user(db: Session, *, follower: User, target_id: UUID) -> bool:
    follower_id = cast(UUID, follower.id)
    if follower_id == target_id:
        raise ValidationError("Cannot follow yourself")

    _get_user_or_404(db, target_id)

    if db.get(Follow, (follower_id, target_id)) is not None:
        return False

    db.add(Follow(follower_id=follower_id, following_id=target_id))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return False
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Error following %s", target_id)
        raise QueryError("Unable to follow user") from exc
    return True


def unfollow_user(db: Session, *, follower: User, target_id: UUID) -> bool:
    follower_id = cast(UUID, follower.id)
    if follower_id == target_id:
        return False

    if db.get(Follow, (follower_id, target_id)) is None:
        return False
    try:
        db.execute(delete(Follow).where(Follow.follower_id == follower_id, Follow.following_id == target_id))
        db.commit()
        return True
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Error unfollowing %s", target_id)
        raise QueryError("Unable to unfollow user") from exc


def get_follow_stats(db: Session, *, user_id: UUID, viewer_id: UUID | None = None) -> FollowStats:
    _get_user_or_404(db, user_id)

    followers_count = db.scalar(
        select(func.count()).select_from(Follow).where(Follow.following_id == user_id)
    ) or 0
    following_count = db.scalar(
        select(func.count()).select_from(Follow).where(Follow.follower_id == user_id)
    ) or 0

    is_following = False
    if viewer_id is not None:
        is_following = db.get(Follow, (viewer_id, user_id)) is not None

    return FollowStats(
        user_id=user_id,
        followers_count=int(followers_count),
        following_count=int(following_count),
        is_following=is_following,
    )


def list_follow_users(db: Session, *, user_id: UUID, list_type: Literal["followers", "following"]) -> list[User]:
    """Users on either side of ``user_id``'s follow edges, oldest edge first."""

    _get_user_or_404(db, user_id)
    if list_type == "followers":
        statement = (
            select(User)
            .join(Follow, Follow.follower_id == User.id)
            .where(Follow.following_id == user_id)
        )
    else:
        statement = (
            select(User)
            .join(Follow, Follow.following_id == User.id)
            .where(Follow.follower_id == user_id)
        )
    return list(db.scalars(statement.order_by(Follow.created_at.asc())))


__all__ = ["FollowStats", "follow_user", "unfollow_user", "get_follow_stats", "list_follow_users"]
