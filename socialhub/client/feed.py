"""Infinite-scroll bookkeeping for the home feed and profile post lists."""
from __future__ import annotations

import logging
import threading
from typing import Any, Protocol
from uuid import UUID

from ..errors import SocialError
from ..schemas import ChangeKind
from .reconcile import Placement, ReconciledList, Row

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
LOAD_ERROR_MESSAGE = "Could not load posts. Please try again."


class PostSource(Protocol):
    def list_posts(
        self,
        *,
        page: int = 0,
        page_size: int | None = None,
        author_id: UUID | str | None = None,
    ) -> dict[str, Any]: ...


class FeedLoader:
    """Fetch fixed-size pages newest first and append them to one growing list."""

    def __init__(
        self,
        source: PostSource,
        *,
        author_id: UUID | str | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self.source = source
        self.author_id = author_id
        self.page_size = page_size
        self.page = 0
        self.exhausted = False
        self.error: str | None = None
        self._posts = ReconciledList(placement=Placement.TAIL)
        self._busy = threading.Lock()

    @property
    def posts(self) -> list[Row]:
        return list(self._posts)

    @property
    def busy(self) -> bool:
        return self._busy.locked()

    def load_next(self) -> list[Row]:
        """Append the next page; returns the rows added.

        Calls made while a fetch is in flight, or after exhaustion, return
        nothing. A failed fetch leaves the cursor where it was.
        """

        if self.exhausted or not self._busy.acquire(blocking=False):
            return []
        try:
            try:
                payload = self.source.list_posts(page=self.page, page_size=self.page_size, author_id=self.author_id)
            except SocialError as exc:
                logger.warning("Loading page %d failed: %s", self.page, exc.detail)
                self.error = LOAD_ERROR_MESSAGE
                return []

            items: list[Row] = list(payload.get("items", []))
            added = [row for row in items if self._posts.apply(ChangeKind.INSERT, row)]
            self.error = None
            self.page += 1
            if len(items) < self.page_size:
                self.exhausted = True
            return added
        finally:
            self._busy.release()

    def remove(self, post_id: object) -> bool:
        """Drop a post from the loaded list (after the author deleted it)."""

        return self._posts.apply(ChangeKind.DELETE, {"id": str(post_id)})


__all__ = ["DEFAULT_PAGE_SIZE", "FeedLoader", "PostSource"]
