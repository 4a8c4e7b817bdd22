"""Unit tests for subscription scopes, hub fan-out and the client channel."""
from __future__ import annotations

import asyncio
import json
import os
import threading
from collections import deque
from typing import Any
from uuid import uuid4

import pytest

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_socialhub.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from socialhub.client.realtime import ChannelClosed, RealtimeChannel  # noqa: E402
from socialhub.errors import ValidationError  # noqa: E402
from socialhub.schemas import ChangeKind  # noqa: E402
from socialhub.services.realtime import RealtimeHub, build_scope  # noqa: E402


class FakeWebSocket:
    def __init__(self, *, broken: bool = False) -> None:
        self.sent: list[dict[str, Any]] = []
        self.broken = broken

    async def send_text(self, data: str) -> None:
        if self.broken:
            raise RuntimeError("socket closed")
        self.sent.append(json.loads(data))


class QueueTransport:
    def __init__(self, *frames: Any) -> None:
        self.frames = deque(json.dumps(frame) if not isinstance(frame, str) else frame for frame in frames)
        self.closed = 0

    def receive_text(self) -> str:
        if not self.frames:
            raise ChannelClosed("drained")
        return self.frames.popleft()

    def close(self) -> None:
        self.closed += 1


def test_build_scope_validates_tables_and_peers() -> None:
    user_id, peer_id = uuid4(), uuid4()

    with pytest.raises(ValidationError):
        build_scope("users", user_id, {})
    with pytest.raises(ValidationError):
        build_scope("messages", user_id, {})
    with pytest.raises(ValidationError):
        build_scope("messages", user_id, {"peer_id": "not-a-uuid"})

    scope = build_scope("messages", user_id, {"peer_id": str(peer_id)})
    assert scope.participants == frozenset({str(user_id), str(peer_id)})


def test_scope_filters_ignore_unknown_columns() -> None:
    post_id = uuid4()
    scope = build_scope("comments", uuid4(), {"post_id": str(post_id), "user_id": "ignored"})

    assert dict(scope.filters) == {"post_id": str(post_id)}
    assert scope.matches("comments", {"id": "c", "post_id": str(post_id), "user_id": "anyone"})
    assert not scope.matches("comments", {"id": "c", "post_id": str(uuid4())})
    assert not scope.matches("likes", {"post_id": str(post_id)})


def test_message_scope_requires_exact_pair() -> None:
    alice, bob, carol = uuid4(), uuid4(), uuid4()
    scope = build_scope("messages", alice, {"peer_id": str(bob)})

    assert scope.matches("messages", {"sender_id": str(bob), "receiver_id": str(alice)})
    assert scope.matches("messages", {"sender_id": str(alice), "receiver_id": str(bob)})
    assert not scope.matches("messages", {"sender_id": str(bob), "receiver_id": str(carol)})
    assert not scope.matches("messages", {"sender_id": str(alice), "receiver_id": str(carol)})


def test_hub_delivers_only_to_matching_subscribers() -> None:
    async def scenario() -> tuple[int, FakeWebSocket, FakeWebSocket, FakeWebSocket]:
        hub = RealtimeHub()
        post_id = uuid4()
        on_post, elsewhere, all_posts = FakeWebSocket(), FakeWebSocket(), FakeWebSocket()
        await hub.connect(on_post, build_scope("likes", uuid4(), {"post_id": str(post_id)}))
        await hub.connect(elsewhere, build_scope("likes", uuid4(), {"post_id": str(uuid4())}))
        await hub.connect(all_posts, build_scope("posts", uuid4(), {}))
        delivered = await hub.publish("likes", ChangeKind.INSERT, {"post_id": post_id, "user_id": uuid4()})
        return delivered, on_post, elsewhere, all_posts

    delivered, on_post, elsewhere, all_posts = asyncio.run(scenario())

    assert delivered == 1
    assert on_post.sent[0] == {"type": "ready", "table": "likes"}
    assert on_post.sent[1]["type"] == "change"
    assert on_post.sent[1]["kind"] == "INSERT"
    assert len(elsewhere.sent) == 1
    assert len(all_posts.sent) == 1


def test_hub_drops_sockets_that_fail() -> None:
    async def scenario() -> tuple[int, int, int]:
        hub = RealtimeHub()
        healthy, broken = FakeWebSocket(), FakeWebSocket()
        await hub.connect(healthy, build_scope("posts", uuid4(), {}))
        await hub.connect(broken, build_scope("posts", uuid4(), {}))
        broken.broken = True
        delivered = await hub.publish("posts", ChangeKind.DELETE, {"id": str(uuid4())})
        remaining = await hub.subscriber_count("posts")
        await hub.disconnect(healthy)
        return delivered, remaining, await hub.subscriber_count()

    delivered, remaining, after_disconnect = asyncio.run(scenario())

    assert delivered == 1
    assert remaining == 1
    assert after_disconnect == 0


def test_channel_waits_for_ready_and_dispatches_changes() -> None:
    received: list[str] = []
    transport = QueueTransport(
        {"type": "ready", "table": "comments"},
        "not json",
        {"type": "pong"},
        {"type": "change", "table": "comments", "kind": "INSERT", "row": {"id": "c1", "post_id": "p"}},
    )
    channel = RealtimeChannel(transport, table="comments", on_change=lambda event: received.append(event.row["id"]))

    channel.wait_ready()
    assert channel.ready
    assert channel.poll() is None
    assert channel.poll() is None
    event = channel.poll()

    assert event is not None and event.kind is ChangeKind.INSERT
    assert received == ["c1"]


def test_channel_close_is_idempotent_and_stops_reads() -> None:
    transport = QueueTransport({"type": "ready", "table": "posts"})
    channel = RealtimeChannel(transport, table="posts")

    channel.close()
    channel.close()

    assert channel.closed
    assert transport.closed == 1
    with pytest.raises(ChannelClosed):
        channel.poll()


def test_listen_stops_when_transport_is_drained() -> None:
    received: list[str] = []
    transport = QueueTransport(
        {"type": "change", "table": "posts", "kind": "DELETE", "row": {"id": "p1"}},
    )
    channel = RealtimeChannel(transport, table="posts", on_change=lambda event: received.append(event.kind.value))

    thread = channel.start()
    thread.join(timeout=5)

    assert not thread.is_alive()
    assert received == ["DELETE"]


class BlockingTransport:
    """Blocks reads until closed, like an idle socket."""

    def __init__(self) -> None:
        self._released = threading.Event()

    def receive_text(self) -> str:
        self._released.wait(timeout=5)
        raise ChannelClosed("closed")

    def close(self) -> None:
        self._released.set()


def test_close_waits_for_the_listener_thread() -> None:
    channel = RealtimeChannel(BlockingTransport(), table="posts")

    thread = channel.start()
    channel.close()

    assert channel.closed
    assert not thread.is_alive()
