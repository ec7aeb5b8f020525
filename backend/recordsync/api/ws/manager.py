"""WebSocket connection registry.

Tracks the set of currently attached subscriber channels. The registry is
the only writer of that set; the notification bus reads it through
:meth:`ConnectionRegistry.snapshot` so that attach/detach during a fan-out
never disturbs the iteration in progress.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from recordsync.exceptions import DeliveryError

logger = logging.getLogger("ws")


@dataclass(eq=False)
class Subscriber:
    """One connected notification channel.

    Identity is the connection itself (``eq=False`` keeps hashing by object
    identity). Holds no application state.
    """

    websocket: WebSocket
    id: str = field(default_factory=lambda: uuid4().hex[:12])
    connected_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    last_ping: datetime | None = None
    _send_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    @property
    def is_open(self) -> bool:
        return (
            self.websocket.client_state != WebSocketState.DISCONNECTED
            and self.websocket.application_state != WebSocketState.DISCONNECTED
        )

    async def send(self, message: dict[str, Any]) -> None:
        """Write one JSON message; writes to the same channel never interleave."""
        async with self._send_lock:
            if not self.is_open:
                raise DeliveryError(self.id, "channel closed")
            await self.websocket.send_json(message)

    def touch(self) -> None:
        """Record a keepalive from the client."""
        self.last_ping = datetime.now(UTC)


class ConnectionRegistry:
    """Set of attached subscribers, safe to mutate while a broadcast iterates."""

    def __init__(self) -> None:
        self._subscribers: set[Subscriber] = set()
        self._lock = threading.Lock()
        self._attach_count = 0
        self._detach_count = 0

    @property
    def count(self) -> int:
        """Number of currently attached subscribers."""
        with self._lock:
            return len(self._subscribers)

    def attach(self, subscriber: Subscriber) -> None:
        """Add a subscriber. Attaching the same subscriber twice is a no-op."""
        with self._lock:
            if subscriber in self._subscribers:
                return
            self._subscribers.add(subscriber)
            self._attach_count += 1
            count = len(self._subscribers)

        logger.info(
            "Subscriber attached",
            extra={
                "service": "ws",
                "subscriber_id": subscriber.id,
                "subscriber_count": count,
            },
        )

    def detach(self, subscriber: Subscriber) -> bool:
        """Remove a subscriber.

        Returns:
            True if it was attached, False if it was already gone.
        """
        with self._lock:
            if subscriber not in self._subscribers:
                return False
            self._subscribers.discard(subscriber)
            self._detach_count += 1
            count = len(self._subscribers)

        logger.info(
            "Subscriber detached",
            extra={
                "service": "ws",
                "subscriber_id": subscriber.id,
                "subscriber_count": count,
            },
        )
        return True

    def snapshot(self) -> tuple[Subscriber, ...]:
        """Copy of the current membership, taken under the lock."""
        with self._lock:
            return tuple(self._subscribers)

    def clear(self) -> int:
        """Detach everyone (shutdown). Returns how many were attached."""
        with self._lock:
            removed = len(self._subscribers)
            self._subscribers.clear()
            self._detach_count += removed
        return removed

    def get_metrics_snapshot(self) -> dict[str, int]:
        with self._lock:
            return {
                "subscriber_count": len(self._subscribers),
                "attach_count": self._attach_count,
                "detach_count": self._detach_count,
            }
