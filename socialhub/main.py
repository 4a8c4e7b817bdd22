"""Application entry point for the FastAPI backend."""
from __future__ import annotations

import logging
from typing import Iterable

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import get_settings
from .database import init_db
from .errors import NotFoundError, SocialError
from .routers import (
    auth_router,
    comments_router,
    follows_router,
    messages_router,
    posts_router,
    profiles_router,
    realtime_router,
    storage_router,
)
from .ui import router as ui_router
from .ui.template_helpers import render_not_found, wants_html

logger = logging.getLogger(__name__)

settings = get_settings()
APP_NAME = settings.app_name
API_VERSION = settings.api_version

app = FastAPI(title=APP_NAME, version=API_VERSION)

if settings.cors_origins:
    origins: Iterable[str] = [origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()]
else:
    origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(profiles_router)
app.include_router(posts_router)
app.include_router(comments_router)
app.include_router(follows_router)
app.include_router(messages_router)
app.include_router(storage_router)
app.include_router(realtime_router)
# Pages last: API paths such as /messages/conversations take precedence.
app.include_router(ui_router)


@app.exception_handler(SocialError)
async def _social_error_handler(request: Request, exc: SocialError) -> Response:
    if isinstance(exc, NotFoundError) and wants_html(request):
        return render_not_found(request, exc.detail)
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(StarletteHTTPException)
async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> Response:
    if exc.status_code == 404 and wants_html(request):
        return render_not_found(request)
    return await http_exception_handler(request, exc)


@app.on_event("startup")
async def _startup() -> None:
    """Ensure database schema is ready before serving."""

    try:
        init_db()
    except Exception:
        logger.exception("Database initialisation failed")
        raise


@app.get("/api", tags=["system"])
def api_info() -> dict[str, str]:
    return {"service": APP_NAME, "version": API_VERSION}


@app.get("/health", tags=["system"])
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
