"""In-process push channel: per-table WebSocket subscriptions with row filters."""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping
from uuid import UUID

from fastapi import WebSocket

from ..errors import ValidationError
from ..schemas import ChangeEvent, ChangeKind

logger = logging.getLogger(__name__)

# Row columns a subscriber may filter on, per table.
TABLE_FILTERS: dict[str, tuple[str, ...]] = {
    "messages": ("peer_id",),
    "comments": ("post_id",),
    "likes": ("post_id",),
    "posts": ("user_id",),
    "follows": ("follower_id", "following_id"),
}


@dataclass(frozen=True)
class ChannelScope:
    """What a single subscription wants to see.

    ``participants`` is set for chat subscriptions: a message row is delivered
    only when its sender and receiver are exactly that pair.
    """

    table: str
    filters: Mapping[str, str] = field(default_factory=dict)
    participants: frozenset[str] | None = None

    def matches(self, table: str, row: Mapping[str, Any]) -> bool:
        if table != self.table:
            return False
        if self.participants is not None:
            pair = frozenset({str(row.get("sender_id")), str(row.get("receiver_id"))})
            if pair != self.participants:
                return False
        for column, expected in self.filters.items():
            if str(row.get(column)) != expected:
                return False
        return True


def build_scope(table: str, user_id: UUID, params: Mapping[str, str]) -> ChannelScope:
    """Validate the requested table and filters for ``user_id``."""

    allowed = TABLE_FILTERS.get(table)
    if allowed is None:
        raise ValidationError(f"Unknown realtime table '{table}'")

    requested = {key: value for key, value in params.items() if key in allowed and value}
    if table == "messages":
        peer = requested.pop("peer_id", None)
        if not peer:
            raise ValidationError("peer_id is required for message subscriptions")
        try:
            peer_id = UUID(peer)
        except ValueError as exc:
            raise ValidationError("peer_id must be a UUID") from exc
        return ChannelScope(table=table, participants=frozenset({str(user_id), str(peer_id)}))
    return ChannelScope(table=table, filters=requested)


class RealtimeHub:
    """Track subscriber sockets and fan change events out to matching scopes."""

    def __init__(self) -> None:
        self._subscriptions: dict[WebSocket, ChannelScope] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, scope: ChannelScope) -> None:
        async with self._lock:
            self._subscriptions[websocket] = scope
        await websocket.send_text(json.dumps({"type": "ready", "table": scope.table}))

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            self._subscriptions.pop(websocket, None)

    async def subscriber_count(self, table: str | None = None) -> int:
        async with self._lock:
            if table is None:
                return len(self._subscriptions)
            return sum(1 for scope in self._subscriptions.values() if scope.table == table)

    async def publish(self, table: str, kind: ChangeKind, row: Mapping[str, Any]) -> int:
        """Send a change frame to every matching subscriber; return how many received it."""

        event = ChangeEvent(table=table, kind=kind, row=dict(row))
        serialized = json.dumps(event.model_dump(mode="json"), default=str)
        async with self._lock:
            targets = [ws for ws, scope in self._subscriptions.items() if scope.matches(table, event.row)]
        delivered = 0
        for connection in targets:
            try:
                await connection.send_text(serialized)
                delivered += 1
            except Exception:
                logger.debug("Dropping realtime subscriber after failed send on %s", table)
                await self.disconnect(connection)
        return delivered


realtime_hub = RealtimeHub()


async def publish_change(table: str, kind: ChangeKind, row: Mapping[str, Any]) -> None:
    """Publish on the shared hub; a failed broadcast never fails the caller."""

    try:
        await realtime_hub.publish(table, kind, row)
    except Exception:
        logger.exception("Realtime publish on %s failed", table)


__all__ = ["TABLE_FILTERS", "ChannelScope", "build_scope", "RealtimeHub", "realtime_hub", "publish_change"]
