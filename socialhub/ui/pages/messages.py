"""Messaging and DM pages."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from ...database import get_session
from ...errors import NotFoundError
from ...services import (
    SessionState,
    get_profile_by_display_name,
    list_conversation,
    list_conversation_partners,
    resolve_session,
)
from ..template_helpers import login_redirect, render_not_found, render_template

router = APIRouter()


@router.get("/messages", response_class=HTMLResponse)
async def messages(
    request: Request,
    session: SessionState = Depends(resolve_session),
    db: Session = Depends(get_session),
):
    if session.user is None:
        return login_redirect()
    has_conversations, users = list_conversation_partners(db, user=session.user)
    return render_template(
        request,
        "messages.html",
        {
            "page_title": "Messages",
            "active_nav": "/messages",
            "has_conversations": has_conversations,
            "users": users,
        },
        session=session,
    )


@router.get("/messages/{display_name}", response_class=HTMLResponse)
async def chat(
    request: Request,
    display_name: str,
    session: SessionState = Depends(resolve_session),
    db: Session = Depends(get_session),
):
    if session.user is None:
        return login_redirect()
    try:
        peer = get_profile_by_display_name(db, display_name)
    except NotFoundError:
        return render_not_found(request, "User not found")
    return render_template(
        request,
        "chat.html",
        {
            "page_title": f"Chat with {peer.display_name}",
            "active_nav": "/messages",
            "peer": peer,
            "messages": list_conversation(db, user_id=session.user.id, peer_id=peer.id),
        },
        session=session,
    )
