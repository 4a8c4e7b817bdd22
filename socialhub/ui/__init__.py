"""Server-rendered pages behind the session gate."""
from .router import router

__all__ = ["router"]
