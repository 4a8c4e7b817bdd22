"""Aggregate router exports."""
from .auth import router as auth_router
from .follows import router as follows_router
from .messages import router as messages_router
from .posts import comments_router
from .posts import router as posts_router
from .profiles import router as profiles_router
from .realtime import router as realtime_router
from .storage import router as storage_router

__all__ = [
    "auth_router",
    "comments_router",
    "follows_router",
    "messages_router",
    "posts_router",
    "profiles_router",
    "realtime_router",
    "storage_router",
]
