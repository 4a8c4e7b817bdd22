"""Profile API routes."""
from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import User
from ..schemas import ProfileResponse, ProfileUpdateRequest, UserListResponse, UserSummary
from ..services import (
    get_current_user,
    get_profile_by_display_name,
    list_follow_users,
    replace_avatar,
    require_member,
    search_users,
    update_profile,
)

router = APIRouter(prefix="/profiles", tags=["profiles"])


def _user_list(users: list[User]) -> UserListResponse:
    return UserListResponse(items=[UserSummary.model_validate(user) for user in users])


@router.get("/me", response_model=ProfileResponse)
async def read_own_profile(current_user: User = Depends(get_current_user)) -> ProfileResponse:
    return ProfileResponse.model_validate(current_user)


@router.patch("/me", response_model=ProfileResponse)
async def update_own_profile(
    payload: ProfileUpdateRequest,
    db: Session = Depends(get_session),
    current_user: User = Depends(require_member),
) -> ProfileResponse:
    user = update_profile(db, user_id=current_user.id, payload=payload)
    return ProfileResponse.model_validate(user)


@router.post("/me/avatar", response_model=ProfileResponse)
async def upload_avatar(
    file: UploadFile = File(...),
    db: Session = Depends(get_session),
    current_user: User = Depends(require_member),
) -> ProfileResponse:
    user = await replace_avatar(db, user=current_user, file=file)
    return ProfileResponse.model_validate(user)


@router.get("/search", response_model=UserListResponse)
async def search_profiles(
    q: str = Query("", max_length=150),
    db: Session = Depends(get_session),
    _: User = Depends(get_current_user),
) -> UserListResponse:
    return _user_list(search_users(db, q))


@router.get("/{display_name}", response_model=ProfileResponse)
async def read_profile(
    display_name: str,
    db: Session = Depends(get_session),
    _: User = Depends(get_current_user),
) -> ProfileResponse:
    return ProfileResponse.model_validate(get_profile_by_display_name(db, display_name))


async def _follow_list(db: Session, display_name: str, list_type: Literal["followers", "following"]) -> UserListResponse:
    user = get_profile_by_display_name(db, display_name)
    return _user_list(list_follow_users(db, user_id=user.id, list_type=list_type))


@router.get("/{display_name}/followers", response_model=UserListResponse)
async def read_followers(
    display_name: str,
    db: Session = Depends(get_session),
    _: User = Depends(get_current_user),
) -> UserListResponse:
    return await _follow_list(db, display_name, "followers")


@router.get("/{display_name}/following", response_model=UserListResponse)
async def read_following(
    display_name: str,
    db: Session = Depends(get_session),
    _: User = Depends(get_current_user),
) -> UserListResponse:
    return await _follow_list(db, display_name, "following")


__all__ = ["router"]
