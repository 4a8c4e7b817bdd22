"""Profile lookups, edits, avatar replacement and user search."""
from __future__ import annotations

import logging
from uuid import UUID

from fastapi import UploadFile
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..constants import SEARCH_RESULT_LIMIT
from ..errors import DisplayNameTakenError, NotFoundError, QueryError, SocialError
from ..models import User
from ..schemas import ProfileUpdateRequest
from .storage_service import remove_objects, upload_object

logger = logging.getLogger(__name__)


def get_profile_by_display_name(db: Session, display_name: str) -> User:
    user = db.scalar(select(User).where(User.display_name == display_name))
    if user is None:
        raise NotFoundError("User not found")
    return user


def _commit_profile(db: Session, user: User) -> User:
    user_id = user.id
    display_name = user.display_name
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        taken = db.scalar(select(User.id).where(User.display_name == display_name, User.id != user_id))
        if taken is not None:
            raise DisplayNameTakenError() from exc
        logger.exception("Integrity error updating profile for %s", user_id)
        raise QueryError("Error updating profile") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Error updating profile for %s", user_id)
        raise QueryError("Error updating profile") from exc
    db.refresh(user)
    return user


def update_profile(db: Session, *, user_id: UUID, payload: ProfileUpdateRequest) -> User:
    """Apply profile updates for the supplied ``user_id``."""

    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")

    # Only update fields that were actually sent by the client
    update_data = payload.model_dump(exclude_unset=True)
    if "display_name" in update_data:
        name = (update_data["display_name"] or "").strip()
        if not name:
            update_data.pop("display_name")
        else:
            update_data["display_name"] = name

    for field, value in update_data.items():
        setattr(user, field, value)

    return _commit_profile(db, user)


async def replace_avatar(db: Session, *, user: User, file: UploadFile) -> User:
    """Upload a new avatar, point the profile at it, then remove the previous object."""

    bucket = get_settings().avatar_images_bucket
    stored = await upload_object(file, bucket=bucket, owner_id=user.id)
    previous_key = user.avatar_key
    user.avatar_key = stored.key
    user = _commit_profile(db, user)

    if previous_key:
        try:
            remove_objects(bucket, [previous_key])
        except SocialError:
            logger.warning("Old avatar %s for %s could not be removed", previous_key, user.id)
    return user


def search_users(db: Session, query: str, *, limit: int = SEARCH_RESULT_LIMIT) -> list[User]:
    """Case-insensitive substring match on display names."""

    needle = (query or "").strip()
    if not needle:
        return []
    escaped = needle.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    statement = (
        select(User)
        .where(func.lower(User.display_name).like(f"%{escaped.lower()}%", escape="\\"))
        .order_by(User.display_name.asc())
        .limit(limit)
    )
    return list(db.scalars(statement))


__all__ = ["get_profile_by_display_name", "update_profile", "replace_avatar", "search_users"]
