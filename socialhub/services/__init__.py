"""Convenience exports for service layer."""
from .auth_service import (
    ANONYMOUS,
    SessionState,
    create_access_token,
    decode_access_token,
    get_current_user,
    get_optional_user,
    require_member,
    resolve_session,
    resolve_token,
    sign_in,
    sign_in_as_guest,
    sign_up,
)
from .follow_service import FollowStats, follow_user, get_follow_stats, list_follow_users, unfollow_user
from .message_service import (
    delete_message,
    list_conversation,
    list_conversation_partners,
    send_message,
    update_message,
)
from .post_service import (
    create_post_comment,
    create_post_record,
    delete_post_comment,
    delete_post_record,
    list_post_comments,
    list_post_page,
    set_like_state,
    update_post_comment,
    update_post_record,
)
from .profile_service import get_profile_by_display_name, replace_avatar, search_users, update_profile
from .realtime import ChannelScope, RealtimeHub, build_scope, publish_change, realtime_hub
from .storage_service import create_signed_url, remove_objects, upload_object

__all__ = [
    "ANONYMOUS",
    "SessionState",
    "create_access_token",
    "decode_access_token",
    "get_current_user",
    "get_optional_user",
    "require_member",
    "resolve_session",
    "resolve_token",
    "sign_in",
    "sign_in_as_guest",
    "sign_up",
    "FollowStats",
    "follow_user",
    "get_follow_stats",
    "list_follow_users",
    "unfollow_user",
    "delete_message",
    "list_conversation",
    "list_conversation_partners",
    "send_message",
    "update_message",
    "create_post_comment",
    "create_post_record",
    "delete_post_comment",
    "delete_post_record",
    "list_post_comments",
    "list_post_page",
    "set_like_state",
    "update_post_comment",
    "update_post_record",
    "get_profile_by_display_name",
    "replace_avatar",
    "search_users",
    "update_profile",
    "ChannelScope",
    "RealtimeHub",
    "build_scope",
    "publish_change",
    "realtime_hub",
    "create_signed_url",
    "remove_objects",
    "upload_object",
]
