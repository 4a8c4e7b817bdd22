"""Convenience exports for schema layer."""
from .auth import AuthResponse, LoginRequest, SessionResponse, SignupRequest, SignupResponse
from .follow import FollowActionResponse, FollowStatsResponse
from .messages import (
    ConversationListResponse,
    ConversationResponse,
    MessageResponse,
    MessageSendRequest,
    MessageUpdateRequest,
)
from .posts import (
    CommentCreate,
    CommentListResponse,
    CommentResponse,
    CommentUpdate,
    LikeStateResponse,
    PostAuthor,
    PostPageResponse,
    PostResponse,
    PostUpdateRequest,
)
from .profiles import ProfileResponse, ProfileUpdateRequest, UserListResponse, UserSummary
from .realtime import ChangeEvent, ChangeKind
from .storage import SignedUrlRequest, SignedUrlResponse

__all__ = [
    "AuthResponse",
    "LoginRequest",
    "SessionResponse",
    "SignupRequest",
    "SignupResponse",
    "FollowActionResponse",
    "FollowStatsResponse",
    "ConversationListResponse",
    "ConversationResponse",
    "MessageResponse",
    "MessageSendRequest",
    "MessageUpdateRequest",
    "CommentCreate",
    "CommentListResponse",
    "CommentResponse",
    "CommentUpdate",
    "LikeStateResponse",
    "PostAuthor",
    "PostPageResponse",
    "PostResponse",
    "PostUpdateRequest",
    "ProfileResponse",
    "ProfileUpdateRequest",
    "UserListResponse",
    "UserSummary",
    "ChangeEvent",
    "ChangeKind",
    "SignedUrlRequest",
    "SignedUrlResponse",
]
