"""Client side of the push channel: one subscription per view."""
from __future__ import annotations

import json
import logging
import threading
from typing import Any, Callable, Protocol

from websockets.exceptions import ConnectionClosed
from websockets.sync.client import connect

from ..schemas import ChangeEvent
from .api import SocialClient

logger = logging.getLogger(__name__)

ChangeHandler = Callable[[ChangeEvent], None]


class Transport(Protocol):
    """Minimal text-frame transport; FastAPI's test sessions satisfy it too."""

    def receive_text(self) -> str: ...

    def close(self) -> None: ...


class WebSocketsTransport:
    """Adapter over a ``websockets`` synchronous connection."""

    def __init__(self, url: str, *, open_timeout: float = 10.0) -> None:
        self._connection = connect(url, open_timeout=open_timeout)

    def receive_text(self) -> str:
        data = self._connection.recv()
        return data if isinstance(data, str) else data.decode("utf-8")

    def close(self) -> None:
        self._connection.close()


class ChannelClosed(Exception):
    """Raised when reading from a channel that has been released."""


class RealtimeChannel:
    """A subscription to one table scope.

    Frames are pulled with :meth:`poll` (or continuously by :meth:`start`) and
    every change frame is handed to ``on_change``. :meth:`close` releases the
    transport exactly once, however often it is called.
    """

    def __init__(self, transport: Transport, *, table: str, on_change: ChangeHandler | None = None) -> None:
        self.table = table
        self.on_change = on_change
        self._transport = transport
        self._closed = False
        self._close_lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self.ready = False

    @classmethod
    def open(
        cls,
        client: SocialClient,
        table: str,
        *,
        on_change: ChangeHandler | None = None,
        **filters: Any,
    ) -> "RealtimeChannel":
        channel = cls(WebSocketsTransport(client.realtime_url(table, **filters)), table=table, on_change=on_change)
        channel.wait_ready()
        return channel

    @property
    def closed(self) -> bool:
        return self._closed

    def _read_frame(self) -> dict[str, Any]:
        if self._closed:
            raise ChannelClosed(self.table)
        raw = self._transport.receive_text()
        try:
            frame = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring malformed frame on %s: %r", self.table, raw[:200])
            return {}
        return frame if isinstance(frame, dict) else {}

    def wait_ready(self) -> None:
        """Block until the server confirms the subscription."""

        while not self.ready:
            if self._read_frame().get("type") == "ready":
                self.ready = True

    def poll(self) -> ChangeEvent | None:
        """Read one frame; dispatch and return it when it is a change."""

        frame = self._read_frame()
        if frame.get("type") == "ready":
            self.ready = True
            return None
        if frame.get("type") != "change":
            return None
        event = ChangeEvent.model_validate(frame)
        if self.on_change is not None:
            self.on_change(event)
        return event

    def listen(self) -> None:
        """Dispatch frames until the channel is closed or the connection drops."""

        while not self._closed:
            try:
                self.poll()
            except (ChannelClosed, ConnectionClosed):
                break
            except Exception:
                if self._closed:
                    break
                logger.exception("Realtime listener on %s stopped", self.table)
                break

    def start(self) -> threading.Thread:
        if self._thread is None:
            self._thread = threading.Thread(target=self.listen, name=f"realtime-{self.table}", daemon=True)
            self._thread.start()
        return self._thread

    def close(self, *, join_timeout: float = 5.0) -> None:
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        try:
            self._transport.close()
        except Exception:
            logger.debug("Transport for %s was already gone", self.table)
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(join_timeout)
            if thread.is_alive():
                logger.warning("Realtime listener on %s did not stop within %.1fs", self.table, join_timeout)


__all__ = ["Transport", "WebSocketsTransport", "RealtimeChannel", "ChannelClosed", "ChangeHandler"]
