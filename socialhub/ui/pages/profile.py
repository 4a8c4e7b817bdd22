"""Profile and follow list pages."""
from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from ...database import get_session
from ...errors import NotFoundError
from ...models import User
from ...services import (
    SessionState,
    get_follow_stats,
    get_profile_by_display_name,
    list_follow_users,
    list_post_page,
    resolve_session,
)
from ..template_helpers import login_redirect, render_not_found, render_template

router = APIRouter()


def _render_profile(request: Request, db: Session, session: SessionState, profile: User):
    stats = get_follow_stats(db, user_id=profile.id, viewer_id=session.user_id)
    posts = list_post_page(db, page=0, author_id=profile.id, viewer_id=session.user_id)
    return render_template(
        request,
        "profile.html",
        {
            "page_title": profile.display_name,
            "active_nav": "/profile",
            "profile": profile,
            "stats": stats,
            "posts": posts,
            "is_own_profile": profile.id == session.user_id,
        },
        session=session,
    )


@router.get("/profile", response_class=HTMLResponse)
async def own_profile(
    request: Request,
    session: SessionState = Depends(resolve_session),
    db: Session = Depends(get_session),
):
    if session.user is None:
        return login_redirect()
    return _render_profile(request, db, session, session.user)


@router.get("/profile/{display_name}", response_class=HTMLResponse)
async def public_profile(
    request: Request,
    display_name: str,
    session: SessionState = Depends(resolve_session),
    db: Session = Depends(get_session),
):
    if not session.authenticated:
        return login_redirect()
    try:
        profile = get_profile_by_display_name(db, display_name)
    except NotFoundError:
        return render_not_found(request, "User not found")
    return _render_profile(request, db, session, profile)


async def _follow_list_page(
    request: Request,
    db: Session,
    session: SessionState,
    display_name: str,
    list_type: Literal["followers", "following"],
):
    if not session.authenticated:
        return login_redirect()
    try:
        profile = get_profile_by_display_name(db, display_name)
    except NotFoundError:
        return render_not_found(request, "User not found")
    return render_template(
        request,
        "follow_list.html",
        {
            "page_title": f"{display_name} · {list_type}",
            "profile": profile,
            "list_type": list_type,
            "users": list_follow_users(db, user_id=profile.id, list_type=list_type),
        },
        session=session,
    )


@router.get("/profile/{display_name}/followers", response_class=HTMLResponse)
async def followers(
    request: Request,
    display_name: str,
    session: SessionState = Depends(resolve_session),
    db: Session = Depends(get_session),
):
    return await _follow_list_page(request, db, session, display_name, "followers")


@router.get("/profile/{display_name}/following", response_class=HTMLResponse)
async def following(
    request: Request,
    display_name: str,
    session: SessionState = Depends(resolve_session),
    db: Session = Depends(get_session),
):
    return await _follow_list_page(request, db, session, display_name, "following")
