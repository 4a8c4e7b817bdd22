"""Authentication related API routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from ..config import get_settings
from ..database import get_session
from ..models import User
from ..schemas import AuthResponse, LoginRequest, SessionResponse, SignupRequest, SignupResponse
from ..services import SessionState, resolve_session, sign_in, sign_in_as_guest, sign_up

router = APIRouter(prefix="/auth", tags=["auth"])


def _set_session_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=settings.jwt_expires_minutes * 60,
        httponly=True,
        samesite="lax",
        path="/",
    )


def _auth_response(user: User, token: str) -> AuthResponse:
    return AuthResponse(
        access_token=token,
        user_id=user.id,
        display_name=user.display_name,
        is_guest=user.is_guest,
    )


@router.post("/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
async def signup_endpoint(
    payload: SignupRequest,
    db: Session = Depends(get_session),
) -> SignupResponse:
    user = sign_up(db, payload)
    return SignupResponse(user_id=user.id, display_name=user.display_name)


@router.post("/login", response_model=AuthResponse)
async def login_endpoint(
    payload: LoginRequest,
    response: Response,
    db: Session = Depends(get_session),
) -> AuthResponse:
    user, token = sign_in(db, str(payload.email), payload.password)
    _set_session_cookie(response, token)
    return _auth_response(user, token)


@router.post("/guest", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def guest_login_endpoint(response: Response, db: Session = Depends(get_session)) -> AuthResponse:
    user, token = sign_in_as_guest(db)
    _set_session_cookie(response, token)
    return _auth_response(user, token)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout_endpoint() -> Response:
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(get_settings().session_cookie_name, path="/")
    return response


@router.get("/session", response_model=SessionResponse)
async def session_endpoint(session: SessionState = Depends(resolve_session)) -> SessionResponse:
    if session.user is None:
        return SessionResponse(authenticated=False)
    return SessionResponse(
        authenticated=True,
        user_id=session.user.id,
        display_name=session.user.display_name,
        is_guest=session.is_guest,
    )


__all__ = ["router"]
