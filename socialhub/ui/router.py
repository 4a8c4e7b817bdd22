"""Aggregate UI page routes into a single router."""
from __future__ import annotations

from fastapi import APIRouter

from .pages import auth, home, messages, profile

router = APIRouter(include_in_schema=False)

router.include_router(home.router)
router.include_router(auth.router)
router.include_router(profile.router)
router.include_router(messages.router)

__all__ = ["router"]
