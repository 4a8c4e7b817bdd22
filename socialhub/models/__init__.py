"""Convenience exports for ORM models."""
from .follow import Follow
from .message import Message
from .post import Comment, Like, Post
from .user import User

__all__ = [
    "Comment",
    "Follow",
    "Like",
    "Message",
    "Post",
    "User",
]
