"""Authentication related pages."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse

from ...services import SessionState, resolve_session
from ..template_helpers import render_template

router = APIRouter()


@router.get("/login", response_class=HTMLResponse)
async def login(request: Request, session: SessionState = Depends(resolve_session)):
    if session.authenticated:
        return RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)
    return render_template(request, "login.html", {"page_title": "Login"})


@router.get("/signup", response_class=HTMLResponse)
async def signup(request: Request, session: SessionState = Depends(resolve_session)):
    if session.authenticated:
        return RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)
    return render_template(request, "signup.html", {"page_title": "Sign up"})
