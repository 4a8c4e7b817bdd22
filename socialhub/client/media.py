"""Resolve stored object keys to signed URLs for rendering."""
from __future__ import annotations

import logging
from typing import Any, Protocol

from ..constants import PLACEHOLDER_AVATAR_URL, PLACEHOLDER_IMAGE_URL
from ..errors import SocialError

logger = logging.getLogger(__name__)


class UrlSigner(Protocol):
    def sign_url(self, bucket: str, key: str) -> dict[str, Any]: ...


class SignedUrlResolver:
    """Signed URLs for one bucket, cached for the lifetime of this instance.

    ``resolve`` never raises: an absent key or any failure yields the
    placeholder.
    """

    def __init__(self, signer: UrlSigner, bucket: str, *, placeholder: str = PLACEHOLDER_IMAGE_URL) -> None:
        self.signer = signer
        self.bucket = bucket
        self.placeholder = placeholder
        self._cache: dict[str, str] = {}

    @classmethod
    def for_avatars(cls, signer: UrlSigner, bucket: str = "avatar-images") -> "SignedUrlResolver":
        return cls(signer, bucket, placeholder=PLACEHOLDER_AVATAR_URL)

    @classmethod
    def for_post_images(cls, signer: UrlSigner, bucket: str = "post-images") -> "SignedUrlResolver":
        return cls(signer, bucket, placeholder=PLACEHOLDER_IMAGE_URL)

    def resolve(self, key: str | None) -> str:
        if not key:
            return self.placeholder
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        try:
            url = self.signer.sign_url(self.bucket, key)["signed_url"]
        except SocialError as exc:
            logger.warning("Signing %s/%s failed: %s", self.bucket, key, exc.detail)
            return self.placeholder
        except (KeyError, TypeError):
            logger.warning("Malformed signing response for %s/%s", self.bucket, key)
            return self.placeholder
        self._cache[key] = url
        return url


__all__ = ["SignedUrlResolver", "UrlSigner"]
