"""Small HTML fragments shared by page templates."""
from __future__ import annotations

from urllib.parse import quote

from markupsafe import Markup, escape


def user_card(display_name: str, avatar_url: str, *, href: str | None = None) -> Markup:
    target = escape(href or f"/profile/{quote(display_name, safe='')}")
    return Markup(
        f"""
        <a class=\"user-card\" href=\"{target}\">
            <img class=\"avatar\" src=\"{escape(avatar_url)}\" alt=\"\" width=\"40\" height=\"40\">
            <span>{escape(display_name)}</span>
        </a>
        """
    )


def empty_state(message: str) -> Markup:
    return Markup(f'<p class="empty-state">{escape(message)}</p>')


def guest_notice(message: str) -> Markup:
    return Markup(f'<p class="guest-notice">{escape(message)}</p>')


__all__ = ["user_card", "empty_state", "guest_notice"]
