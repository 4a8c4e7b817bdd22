"""Home/feed and search pages."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from ...database import get_session
from ...services import SessionState, list_post_page, resolve_session, search_users
from ..template_helpers import login_redirect, render_template

router = APIRouter()


@router.get("/", response_class=HTMLResponse)
async def feed(
    request: Request,
    page: int = Query(0, ge=0),
    session: SessionState = Depends(resolve_session),
    db: Session = Depends(get_session),
):
    """Render one feed page; "Load more" links to the next one."""

    if not session.authenticated:
        return login_redirect()
    feed_page = list_post_page(db, page=page, viewer_id=session.user_id)
    return render_template(
        request,
        "home.html",
        {"page_title": "Feed", "active_nav": "/", "page": feed_page},
        session=session,
    )


@router.get("/search", response_class=HTMLResponse)
async def search(
    request: Request,
    q: str = Query("", max_length=150),
    session: SessionState = Depends(resolve_session),
    db: Session = Depends(get_session),
):
    if not session.authenticated:
        return login_redirect()
    return render_template(
        request,
        "search.html",
        {"page_title": "Search", "active_nav": "/search", "query": q, "results": search_users(db, q)},
        session=session,
    )
