"""Client-side session gate."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol, Union
from uuid import UUID

from ..errors import SocialError

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"


class SessionSource(Protocol):
    def get_session(self) -> dict[str, Any]: ...


@dataclass(frozen=True)
class Anonymous:
    redirect_to: str = LOGIN_PATH


@dataclass(frozen=True)
class Authenticated:
    user_id: UUID
    is_guest: bool
    display_name: str | None = None


SessionStatus = Union[Anonymous, Authenticated]


class SessionGate:
    """Decide whether a protected view may render."""

    def __init__(self, source: SessionSource) -> None:
        self.source = source

    def check(self) -> SessionStatus:
        try:
            payload = self.source.get_session()
        except SocialError as exc:
            logger.warning("Session lookup failed: %s", exc.detail)
            return Anonymous()
        if not payload or not payload.get("authenticated") or not payload.get("user_id"):
            return Anonymous()
        return Authenticated(
            user_id=UUID(str(payload["user_id"])),
            is_guest=bool(payload.get("is_guest")),
            display_name=payload.get("display_name"),
        )


__all__ = ["Anonymous", "Authenticated", "SessionGate", "SessionStatus", "LOGIN_PATH"]
