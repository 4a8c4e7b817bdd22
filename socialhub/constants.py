"""Project-wide constant values."""
from __future__ import annotations

PLACEHOLDER_AVATAR_URL = "https://via.placeholder.com/40"
PLACEHOLDER_IMAGE_URL = "https://via.placeholder.com/150"

ACCOUNT_KIND_MEMBER = "member"
ACCOUNT_KIND_GUEST = "guest"

GUEST_NAME_PREFIX = "guest_"

# Display names are URL path segments on both the API and the pages.
DISPLAY_NAME_PATTERN = r"^[A-Za-z0-9_][A-Za-z0-9_.-]*$"
RESERVED_DISPLAY_NAMES = frozenset({"me", "search", "conversations"})

SEARCH_RESULT_LIMIT = 10
CONVERSATION_SUGGESTION_LIMIT = 3

GUEST_BLOCK_DETAIL = "Guest accounts cannot perform this action."

__all__ = [
    "PLACEHOLDER_AVATAR_URL",
    "PLACEHOLDER_IMAGE_URL",
    "ACCOUNT_KIND_MEMBER",
    "ACCOUNT_KIND_GUEST",
    "GUEST_NAME_PREFIX",
    "DISPLAY_NAME_PATTERN",
    "RESERVED_DISPLAY_NAMES",
    "SEARCH_RESULT_LIMIT",
    "CONVERSATION_SUGGESTION_LIMIT",
    "GUEST_BLOCK_DETAIL",
]
