"""Change events and the in-process notification bus.

A :class:`ChangeEvent` is built by the record service after a mutation has
committed and handed to an :class:`EventPublisher`. The production publisher
is :class:`NotificationBus`, which fans the event out to every subscriber in
the :class:`~recordsync.api.ws.manager.ConnectionRegistry`.

Delivery semantics:
- at most once, no persistence, no replay
- each subscriber is written to independently; a slow or dead subscriber
  is timed out, logged and detached without affecting the others
- ``publish`` only schedules deliveries and returns, so the mutating
  request never waits on fan-out

Usage:
    bus = NotificationBus(registry, send_timeout=5.0)
    bus.publish(ChangeEvent.created(record))
    await bus.drain()  # shutdown / tests
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

from recordsync.exceptions import DeliveryError

if TYPE_CHECKING:
    from recordsync.api.ws.manager import ConnectionRegistry, Subscriber
    from recordsync.schemas.record import RecordRead

logger = logging.getLogger("events")

DB_CHANGE = "db_change"


class ChangeKind(str, Enum):
    """Kind of committed mutation."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"

    @property
    def wire_name(self) -> str:
        """Name used on the real-time channel (``created`` is sent as ``added``)."""
        return _WIRE_NAMES[self]


_WIRE_NAMES = {
    ChangeKind.CREATED: "added",
    ChangeKind.UPDATED: "updated",
    ChangeKind.DELETED: "deleted",
}


@dataclass(frozen=True)
class ChangeEvent:
    """Announcement of one committed mutation.

    Attributes:
        kind: What happened to the record
        payload: The full record for created/updated, ``{"id": ...}`` for deleted
    """

    kind: ChangeKind
    payload: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def created(cls, record: RecordRead) -> ChangeEvent:
        return cls(kind=ChangeKind.CREATED, payload=record.model_dump())

    @classmethod
    def updated(cls, record: RecordRead) -> ChangeEvent:
        return cls(kind=ChangeKind.UPDATED, payload=record.model_dump())

    @classmethod
    def deleted(cls, record_id: int) -> ChangeEvent:
        return cls(kind=ChangeKind.DELETED, payload={"id": record_id})

    @property
    def record_id(self) -> int | None:
        return self.payload.get("id")

    def to_message(self) -> dict[str, Any]:
        """Serialize to the real-time channel message."""
        return {
            "type": DB_CHANGE,
            "event": self.kind.wire_name,
            "payload": dict(self.payload),
        }


class EventPublisher(Protocol):
    """Anything the record service can hand committed changes to."""

    def publish(self, event: ChangeEvent) -> Any:
        ...


class NotificationBus:
    """Process-wide broadcast of change events to attached subscribers."""

    def __init__(self, registry: ConnectionRegistry, send_timeout: float = 5.0) -> None:
        """Initialize the bus.

        Args:
            registry: Source of the fan-out target set
            send_timeout: Seconds allowed for one write to one subscriber
        """
        self._registry = registry
        self._send_timeout = send_timeout
        self._pending: set[asyncio.Task[None]] = set()
        self._published_count = 0
        self._delivered_count = 0
        self._failed_count = 0

    @property
    def pending_count(self) -> int:
        """Deliveries scheduled but not finished."""
        return len(self._pending)

    def publish(self, event: ChangeEvent) -> int:
        """Schedule delivery of ``event`` to every currently attached subscriber.

        Must be called from the event loop. Subscribers attached after this
        call never see the event.

        Returns:
            Number of subscribers the event was scheduled for
        """
        subscribers = self._registry.snapshot()
        message = event.to_message()
        loop = asyncio.get_running_loop()

        for subscriber in subscribers:
            task = loop.create_task(self._deliver(subscriber, message))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

        self._published_count += 1
        logger.info(
            "Change event published",
            extra={
                "service": "events",
                "event": message["event"],
                "record_id": event.record_id,
                "subscriber_count": len(subscribers),
            },
        )
        return len(subscribers)

    async def _send(self, subscriber: Subscriber, message: dict[str, Any]) -> None:
        try:
            await asyncio.wait_for(subscriber.send(message), timeout=self._send_timeout)
        except DeliveryError:
            raise
        except asyncio.TimeoutError as exc:
            raise DeliveryError(subscriber.id, "send timed out") from exc
        except Exception as exc:
            raise DeliveryError(subscriber.id, f"{type(exc).__name__}: {exc}") from exc

    async def _deliver(self, subscriber: Subscriber, message: dict[str, Any]) -> None:
        try:
            await self._send(subscriber, message)
        except DeliveryError as err:
            self._failed_count += 1
            self._registry.detach(subscriber)
            logger.warning(
                "Notification delivery failed; subscriber detached",
                extra={
                    "service": "events",
                    "subscriber_id": err.subscriber_id,
                    "event": message.get("event"),
                    "error_code": err.code,
                    "error": err.reason,
                },
            )
            return

        self._delivered_count += 1
        logger.debug(
            "Notification delivered",
            extra={
                "service": "events",
                "subscriber_id": subscriber.id,
                "event": message.get("event"),
            },
        )

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for scheduled deliveries; cancel whatever is left after ``timeout``."""
        if not self._pending:
            return

        done, pending = await asyncio.wait(set(self._pending), timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def get_metrics_snapshot(self) -> dict[str, int]:
        return {
            "published_count": self._published_count,
            "delivered_count": self._delivered_count,
            "failed_count": self._failed_count,
            "pending_count": self.pending_count,
        }


__all__ = [
    "DB_CHANGE",
    "ChangeEvent",
    "ChangeKind",
    "EventPublisher",
    "NotificationBus",
]
