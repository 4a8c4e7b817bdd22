"""Thin synchronous HTTP client for the SocialHub API."""
from __future__ import annotations

import logging
from typing import Any, BinaryIO, Mapping
from urllib.parse import quote, urlencode
from uuid import UUID

import httpx

from ..errors import AuthError, QueryError, error_from_response

logger = logging.getLogger(__name__)


def _segment(value: Any) -> str:
    return quote(str(value), safe="")


DEFAULT_TIMEOUT = 10.0


class SocialClient:
    """Typed access to the HTTP API.

    Every failed call raises the :mod:`socialhub.errors` class matching the
    server's error code, so callers handle the same taxonomy on both sides.
    ``http`` may be any ``httpx.Client`` (including FastAPI's ``TestClient``).
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        http: httpx.Client | None = None,
        token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        if http is None:
            if not base_url:
                raise ValueError("base_url is required when no http client is supplied")
            http = httpx.Client(base_url=base_url, timeout=timeout)
        self._http = http
        self.token = token
        self.user_id: UUID | None = None
        self.is_guest = False

    def close(self) -> None:
        self._http.close()

    # -- transport -------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._http.request(method, path, headers=self._headers(), **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise QueryError("Network request failed") from exc

        if response.status_code >= 400:
            try:
                payload = response.json()
            except ValueError:
                payload = {"detail": response.text}
            raise error_from_response(response.status_code, payload)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def realtime_url(self, table: str, **filters: Any) -> str:
        """WebSocket URL of the push channel for ``table`` with row filters."""

        base = str(self._http.base_url).rstrip("/")
        if base.startswith("https://"):
            base = "wss://" + base[len("https://"):]
        elif base.startswith("http://"):
            base = "ws://" + base[len("http://"):]
        params = {key: str(value) for key, value in filters.items() if value is not None}
        if self.token:
            params["token"] = self.token
        query = f"?{urlencode(params)}" if params else ""
        return f"{base}/realtime/{table}{query}"

    # -- auth ------------------------------------------------------------

    def _remember_session(self, payload: Mapping[str, Any]) -> None:
        self.token = payload["access_token"]
        self.user_id = UUID(str(payload["user_id"]))
        self.is_guest = bool(payload.get("is_guest"))

    def sign_up(
        self,
        email: str,
        password: str,
        display_name: str,
        *,
        first_name: str = "",
        last_name: str = "",
    ) -> dict[str, Any]:
        return self._request(
            "POST",
            "/auth/signup",
            json={
                "email": email,
                "password": password,
                "display_name": display_name,
                "first_name": first_name,
                "last_name": last_name,
            },
        )

    def sign_in(self, email: str, password: str) -> dict[str, Any]:
        payload = self._request("POST", "/auth/login", json={"email": email, "password": password})
        self._remember_session(payload)
        return payload

    def sign_in_as_guest(self) -> dict[str, Any]:
        payload = self._request("POST", "/auth/guest")
        self._remember_session(payload)
        return payload

    def sign_out(self) -> None:
        try:
            self._request("POST", "/auth/logout")
        finally:
            self.token = None
            self.user_id = None
            self.is_guest = False

    def get_session(self) -> dict[str, Any]:
        return self._request("GET", "/auth/session")

    def restore_session(self, token: str) -> dict[str, Any]:
        """Adopt a previously issued token and reload who it belongs to."""

        self.token = token
        payload = self.get_session()
        if not payload.get("authenticated"):
            self.token = None
            raise AuthError("Session expired")
        self.user_id = UUID(str(payload["user_id"]))
        self.is_guest = bool(payload.get("is_guest"))
        return payload

    # -- profiles --------------------------------------------------------

    def get_own_profile(self) -> dict[str, Any]:
        return self._request("GET", "/profiles/me")

    def update_profile(self, **fields: Any) -> dict[str, Any]:
        return self._request("PATCH", "/profiles/me", json=fields)

    def upload_avatar(self, filename: str, content: bytes | BinaryIO, content_type: str) -> dict[str, Any]:
        return self._request("POST", "/profiles/me/avatar", files={"file": (filename, content, content_type)})

    def get_profile(self, display_name: str) -> dict[str, Any]:
        return self._request("GET", f"/profiles/{_segment(display_name)}")

    def search_users(self, query: str) -> list[dict[str, Any]]:
        return self._request("GET", "/profiles/search", params={"q": query})["items"]

    def list_followers(self, display_name: str) -> list[dict[str, Any]]:
        return self._request("GET", f"/profiles/{_segment(display_name)}/followers")["items"]

    def list_following(self, display_name: str) -> list[dict[str, Any]]:
        return self._request("GET", f"/profiles/{_segment(display_name)}/following")["items"]

    # -- posts, likes, comments -------------------------------------------

    def list_posts(
        self,
        *,
        page: int = 0,
        page_size: int | None = None,
        author_id: UUID | str | None = None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"page": page}
        if page_size is not None:
            params["page_size"] = page_size
        if author_id is not None:
            params["author_id"] = str(author_id)
        return self._request("GET", "/posts", params=params)

    def create_post(
        self,
        content: str = "",
        *,
        image: tuple[str, bytes | BinaryIO, str] | None = None,
    ) -> dict[str, Any]:
        files = {"image": image} if image is not None else None
        return self._request("POST", "/posts", data={"content": content}, files=files)

    def update_post(self, post_id: UUID | str, content: str) -> dict[str, Any]:
        return self._request("PATCH", f"/posts/{_segment(post_id)}", json={"content": content})

    def delete_post(self, post_id: UUID | str) -> None:
        self._request("DELETE", f"/posts/{_segment(post_id)}")

    def like_post(self, post_id: UUID | str) -> dict[str, Any]:
        return self._request("PUT", f"/posts/{_segment(post_id)}/like")

    def unlike_post(self, post_id: UUID | str) -> dict[str, Any]:
        return self._request("DELETE", f"/posts/{_segment(post_id)}/like")

    def list_comments(self, post_id: UUID | str) -> list[dict[str, Any]]:
        return self._request("GET", f"/posts/{_segment(post_id)}/comments")["items"]

    def add_comment(self, post_id: UUID | str, content: str) -> dict[str, Any]:
        return self._request("POST", f"/posts/{_segment(post_id)}/comments", json={"content": content})

    def update_comment(self, comment_id: UUID | str, content: str) -> dict[str, Any]:
        return self._request("PATCH", f"/comments/{_segment(comment_id)}", json={"content": content})

    def delete_comment(self, comment_id: UUID | str) -> None:
        self._request("DELETE", f"/comments/{_segment(comment_id)}")

    # -- follows ---------------------------------------------------------

    def follow(self, target_id: UUID | str) -> dict[str, Any]:
        return self._request("POST", f"/follows/{_segment(target_id)}")

    def unfollow(self, target_id: UUID | str) -> dict[str, Any]:
        return self._request("DELETE", f"/follows/{_segment(target_id)}")

    def follow_stats(self, user_id: UUID | str) -> dict[str, Any]:
        return self._request("GET", f"/follows/stats/{_segment(user_id)}")

    # -- messages --------------------------------------------------------

    def list_conversations(self) -> dict[str, Any]:
        return self._request("GET", "/messages/conversations")

    def get_conversation(self, peer_id: UUID | str) -> dict[str, Any]:
        return self._request("GET", f"/messages/with/{_segment(peer_id)}")

    def send_message(self, receiver_id: UUID | str, content: str) -> dict[str, Any]:
        return self._request("POST", "/messages", json={"receiver_id": str(receiver_id), "content": content})

    def update_message(self, message_id: UUID | str, content: str) -> dict[str, Any]:
        return self._request("PATCH", f"/messages/{_segment(message_id)}", json={"content": content})

    def delete_message(self, message_id: UUID | str) -> dict[str, Any]:
        return self._request("DELETE", f"/messages/{_segment(message_id)}")

    # -- storage ---------------------------------------------------------

    def sign_url(self, bucket: str, key: str) -> dict[str, Any]:
        return self._request("POST", "/storage/sign", json={"bucket": bucket, "key": key})


__all__ = ["SocialClient", "DEFAULT_TIMEOUT"]
