"""Business logic for accounts, sessions and the session gate."""
from __future__ import annotations

import logging
import secrets
import string
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional, Tuple
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..constants import ACCOUNT_KIND_GUEST, ACCOUNT_KIND_MEMBER, GUEST_BLOCK_DETAIL, GUEST_NAME_PREFIX
from ..database import get_session
from ..errors import AuthError, DisplayNameTakenError, DuplicateAccountError, PermissionDeniedError, QueryError
from ..models import User
from ..schemas import SignupRequest

logger = logging.getLogger(__name__)

_security = HTTPBearer(auto_error=False)
_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

_PLACEHOLDER_SECRETS = {"", "changeme", "change-me", "placeholder", "example", "secret"}
_GUEST_ALPHABET = string.ascii_lowercase + string.digits


@dataclass(frozen=True)
class SessionState:
    """Outcome of resolving the caller's session: anonymous or an authenticated user."""

    user: User | None = None

    @property
    def authenticated(self) -> bool:
        return self.user is not None

    @property
    def user_id(self) -> UUID | None:
        return self.user.id if self.user is not None else None

    @property
    def is_guest(self) -> bool:
        return bool(self.user is not None and self.user.is_guest)


ANONYMOUS = SessionState()


@lru_cache(maxsize=1)
def _get_jwt_secret() -> str:
    value = (get_settings().jwt_secret_key or "").strip()
    if value.lower() in _PLACEHOLDER_SECRETS:
        raise RuntimeError("Environment variable JWT_SECRET_KEY is required and must not use placeholder defaults")
    return value


def hash_password(password: str) -> str:
    """Hash a plain-text password using bcrypt."""

    return _pwd_context.hash(password)


def verify_password(password: str, hashed_password: str) -> bool:
    """Verify that ``password`` matches ``hashed_password``."""

    try:
        return _pwd_context.verify(password, hashed_password)
    except ValueError:
        logger.exception("Password verification failed due to a malformed hash")
        return False


def create_access_token(subject: UUID, *, expires_minutes: Optional[int] = None) -> str:
    """Create a signed JWT holding the provided ``subject``."""

    settings = get_settings()
    expire_delta = timedelta(minutes=expires_minutes or settings.jwt_expires_minutes)
    now = datetime.now(timezone.utc)
    payload = {"sub": str(subject), "exp": now + expire_delta, "iat": now}
    return jwt.encode(payload, _get_jwt_secret(), algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> UUID:
    """Decode and validate a JWT, returning the embedded subject UUID."""

    try:
        payload = jwt.decode(token, _get_jwt_secret(), algorithms=[get_settings().jwt_algorithm])
    except JWTError as exc:
        raise AuthError("Invalid token") from exc

    subject = payload.get("sub")
    if not subject:
        raise AuthError("Invalid token payload")
    try:
        return UUID(subject)
    except ValueError as exc:
        raise AuthError("Invalid token payload") from exc


def _conflict_for(db: Session, *, email: str, display_name: str) -> AuthError | DisplayNameTakenError | None:
    # Only consulted after the store rejected the insert, to name the violated constraint.
    if db.scalar(select(User.id).where(User.display_name == display_name)) is not None:
        return DisplayNameTakenError()
    if db.scalar(select(User.id).where(func.lower(User.email) == email.lower())) is not None:
        return DuplicateAccountError()
    return None


def _insert_user(db: Session, user: User) -> User:
    email = str(user.email)
    display_name = str(user.display_name)
    try:
        db.add(user)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        conflict = _conflict_for(db, email=email, display_name=display_name)
        if conflict is not None:
            raise conflict from exc
        logger.exception("Failed to create user %s", display_name)
        raise QueryError("Unable to create account") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to create user %s", display_name)
        raise QueryError("Unable to create account") from exc

    db.refresh(user)
    return user


def sign_up(db: Session, payload: SignupRequest) -> User:
    """Persist a new member account; the store enforces unique display names and emails."""

    full_name = " ".join(part.strip() for part in (payload.first_name, payload.last_name) if part.strip())
    user = User(
        email=str(payload.email).lower(),
        display_name=payload.display_name,
        hashed_password=hash_password(payload.password),
        full_name=full_name or None,
        bio="",
        account_kind=ACCOUNT_KIND_MEMBER,
    )
    return _insert_user(db, user)


def sign_in(db: Session, email: str, password: str) -> Tuple[User, str]:
    """Authenticate credentials and return the user with a fresh session token."""

    user = db.scalar(select(User).where(func.lower(User.email) == email.lower()))
    if user is None or not verify_password(password, str(user.hashed_password)):
        raise AuthError("Invalid login credentials")
    return user, create_access_token(user.id)


def _guest_display_name() -> str:
    suffix = "".join(secrets.choice(_GUEST_ALPHABET) for _ in range(8))
    return f"{GUEST_NAME_PREFIX}{suffix}"


def sign_in_as_guest(db: Session) -> Tuple[User, str]:
    """Provision a fresh guest account and open a session for it."""

    display_name = _guest_display_name()
    user = User(
        email=f"{display_name}@{get_settings().guest_email_domain}",
        display_name=display_name,
        hashed_password=hash_password(secrets.token_urlsafe(24)),
        full_name=display_name,
        bio="",
        account_kind=ACCOUNT_KIND_GUEST,
    )
    user = _insert_user(db, user)
    logger.info("Provisioned guest account %s", display_name)
    return user, create_access_token(user.id)


def _token_from_request(request: Request, credentials: HTTPAuthorizationCredentials | None) -> str | None:
    if credentials and credentials.scheme.lower() == "bearer" and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(get_settings().session_cookie_name) or None


def resolve_token(db: Session, token: str | None) -> SessionState:
    """Map a raw session token to a :class:`SessionState`; invalid tokens are anonymous."""

    if not token:
        return ANONYMOUS
    try:
        user_id = decode_access_token(token)
    except AuthError:
        return ANONYMOUS
    user = db.get(User, user_id)
    if user is None:
        return ANONYMOUS
    return SessionState(user=user)


async def resolve_session(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
    db: Session = Depends(get_session),
) -> SessionState:
    """Session gate dependency: never raises, anonymous when no valid session exists."""

    return resolve_token(db, _token_from_request(request, credentials))


async def get_current_user(session: SessionState = Depends(resolve_session)) -> User:
    """Resolve the authenticated user or reject the request."""

    if session.user is None:
        raise AuthError("Missing or invalid session")
    return session.user


async def get_optional_user(session: SessionState = Depends(resolve_session)) -> User | None:
    return session.user


async def require_member(user: User = Depends(get_current_user)) -> User:
    """Reject guest accounts for actions reserved to members."""

    if user.is_guest:
        raise PermissionDeniedError(GUEST_BLOCK_DETAIL)
    return user


__all__ = [
    "ANONYMOUS",
    "SessionState",
    "hash_password",
    "verify_password",
    "create_access_token",
    "decode_access_token",
    "sign_up",
    "sign_in",
    "sign_in_as_guest",
    "resolve_token",
    "resolve_session",
    "get_current_user",
    "get_optional_user",
    "require_member",
]
