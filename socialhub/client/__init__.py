"""Python client for SocialHub: HTTP access, realtime channels and view state."""
from .api import SocialClient
from .feed import FeedLoader
from .media import SignedUrlResolver
from .realtime import RealtimeChannel, WebSocketsTransport
from .reconcile import Mutation, MutationState, Placement, ReconciledList, run_mutation
from .session import Anonymous, Authenticated, SessionGate
from .views import ChatRoom, CommentThread, ConversationList, FollowButton, PostCard, ProfileView

__all__ = [
    "SocialClient",
    "FeedLoader",
    "SignedUrlResolver",
    "RealtimeChannel",
    "WebSocketsTransport",
    "Mutation",
    "MutationState",
    "Placement",
    "ReconciledList",
    "run_mutation",
    "Anonymous",
    "Authenticated",
    "SessionGate",
    "ChatRoom",
    "CommentThread",
    "ConversationList",
    "FollowButton",
    "PostCard",
    "ProfileView",
]
