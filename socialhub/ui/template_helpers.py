"""Utilities for rendering UI templates with shared context."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from fastapi import Request, status
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates

from ..config import get_settings
from ..constants import PLACEHOLDER_AVATAR_URL, PLACEHOLDER_IMAGE_URL
from ..errors import SocialError
from ..services import SessionState
from ..services.storage_service import create_signed_url
from . import components

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


class MediaUrls:
    """Per-render cache mapping stored object keys to signed URLs."""

    def __init__(self) -> None:
        self._cache: dict[tuple[str, str], str] = {}

    def _resolve(self, bucket: str, key: str | None, placeholder: str) -> str:
        if not key:
            return placeholder
        cache_key = (bucket, key)
        if cache_key not in self._cache:
            try:
                self._cache[cache_key] = create_signed_url(bucket, key)
            except SocialError as exc:
                logger.warning("Falling back to placeholder for %s/%s: %s", bucket, key, exc.detail)
                return placeholder
        return self._cache[cache_key]

    def avatar(self, key: str | None) -> str:
        return self._resolve(get_settings().avatar_images_bucket, key, PLACEHOLDER_AVATAR_URL)

    def post_image(self, key: str | None) -> str:
        return self._resolve(get_settings().post_images_bucket, key, PLACEHOLDER_IMAGE_URL)


def render_template(
    request: Request,
    template_name: str,
    context: dict[str, Any] | None = None,
    *,
    session: SessionState | None = None,
    status_code: int = status.HTTP_200_OK,
):
    """Return a TemplateResponse with shared UI context."""

    base_context: dict[str, Any] = {
        "request": request,
        "app_name": get_settings().app_name,
        "components": components,
        "active_nav": None,
        "page_title": "",
        "session": session,
        "current_user": session.user if session is not None else None,
        "media": MediaUrls(),
    }
    if context:
        base_context.update(context)

    return templates.TemplateResponse(request, template_name, base_context, status_code=status_code)


def login_redirect() -> RedirectResponse:
    return RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)


def wants_html(request: Request) -> bool:
    return "text/html" in request.headers.get("accept", "")


def render_not_found(request: Request, detail: str | None = None):
    return render_template(
        request,
        "not_found.html",
        {"page_title": "Not found", "detail": detail or "This page could not be found."},
        status_code=status.HTTP_404_NOT_FOUND,
    )


__all__ = ["MediaUrls", "render_template", "login_redirect", "wants_html", "render_not_found", "templates"]
