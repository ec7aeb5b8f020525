"""Unit tests for NotificationBus fan-out."""

import asyncio

import pytest

from recordsync.api.ws.manager import ConnectionRegistry
from recordsync.exceptions import DeliveryError
from recordsync.schemas.record import RecordRead
from recordsync.services.events import ChangeEvent, NotificationBus


class FakeSubscriber:
    """Stands in for a WebSocket-backed Subscriber."""

    def __init__(self, name: str, *, fail: Exception | None = None, delay: float = 0.0) -> None:
        self.id = name
        self.received: list[dict] = []
        self._fail = fail
        self._delay = delay

    async def send(self, message: dict) -> None:
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._fail is not None:
            raise self._fail
        self.received.append(message)


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


def _alice() -> ChangeEvent:
    return ChangeEvent.created(RecordRead(id=1, name="Alice"))


@pytest.mark.asyncio
async def test_publish_reaches_every_attached_subscriber(registry):
    bus = NotificationBus(registry, send_timeout=1.0)
    a, b = FakeSubscriber("a"), FakeSubscriber("b")
    registry.attach(a)
    registry.attach(b)

    scheduled = bus.publish(_alice())
    await bus.drain()

    expected = {"type": "db_change", "event": "added", "payload": {"id": 1, "name": "Alice"}}
    assert scheduled == 2
    assert a.received == [expected]
    assert b.received == [expected]
    assert bus.get_metrics_snapshot()["delivered_count"] == 2


@pytest.mark.asyncio
async def test_publish_without_subscribers_is_not_an_error(registry):
    bus = NotificationBus(registry)

    assert bus.publish(_alice()) == 0
    await bus.drain()
    assert bus.get_metrics_snapshot()["published_count"] == 1


@pytest.mark.asyncio
async def test_publish_returns_before_delivery_completes(registry):
    bus = NotificationBus(registry, send_timeout=1.0)
    slow = FakeSubscriber("slow", delay=0.05)
    registry.attach(slow)

    bus.publish(_alice())

    assert slow.received == []
    assert bus.pending_count == 1
    await bus.drain()
    assert len(slow.received) == 1
    assert bus.pending_count == 0


@pytest.mark.asyncio
async def test_failing_subscriber_is_detached_and_others_still_receive(registry):
    bus = NotificationBus(registry, send_timeout=1.0)
    dead = FakeSubscriber("dead", fail=ConnectionResetError("reset by peer"))
    alive = FakeSubscriber("alive")
    registry.attach(dead)
    registry.attach(alive)

    bus.publish(_alice())
    await bus.drain()

    assert len(alive.received) == 1
    assert registry.snapshot() == (alive,)
    assert bus.get_metrics_snapshot()["failed_count"] == 1


@pytest.mark.asyncio
async def test_closed_channel_delivery_error_is_contained(registry):
    bus = NotificationBus(registry, send_timeout=1.0)
    closed = FakeSubscriber("closed", fail=DeliveryError("closed", "channel closed"))
    registry.attach(closed)

    bus.publish(_alice())
    await bus.drain()

    assert registry.count == 0


@pytest.mark.asyncio
async def test_slow_subscriber_times_out_without_blocking_others(registry):
    bus = NotificationBus(registry, send_timeout=0.05)
    stuck = FakeSubscriber("stuck", delay=5.0)
    fast = FakeSubscriber("fast")
    registry.attach(stuck)
    registry.attach(fast)

    bus.publish(_alice())
    await asyncio.sleep(0.01)
    assert len(fast.received) == 1

    await bus.drain()
    assert registry.snapshot() == (fast,)


@pytest.mark.asyncio
async def test_detached_before_publish_never_receives(registry):
    bus = NotificationBus(registry)
    gone, stays = FakeSubscriber("gone"), FakeSubscriber("stays")
    registry.attach(gone)
    registry.attach(stays)
    registry.detach(gone)

    bus.publish(_alice())
    await bus.drain()

    assert gone.received == []
    assert len(stays.received) == 1


@pytest.mark.asyncio
async def test_attached_after_publish_never_sees_the_event(registry):
    bus = NotificationBus(registry)
    early = FakeSubscriber("early")
    registry.attach(early)

    bus.publish(_alice())
    late = FakeSubscriber("late")
    registry.attach(late)
    await bus.drain()

    assert len(early.received) == 1
    assert late.received == []


@pytest.mark.asyncio
async def test_detach_during_fan_out_does_not_disturb_delivery(registry):
    bus = NotificationBus(registry, send_timeout=1.0)

    class DetachingSubscriber(FakeSubscriber):
        async def send(self, message: dict) -> None:
            registry.detach(other)
            await super().send(message)

    first = DetachingSubscriber("first")
    other = FakeSubscriber("other", delay=0.01)
    registry.attach(first)
    registry.attach(other)

    bus.publish(_alice())
    await bus.drain()

    # Both were attached when the event was published.
    assert len(first.received) == 1
    assert len(other.received) == 1
    assert registry.snapshot() == (first,)


@pytest.mark.asyncio
async def test_events_reach_a_subscriber_in_publish_order(registry):
    bus = NotificationBus(registry)
    sub = FakeSubscriber("sub")
    registry.attach(sub)

    bus.publish(ChangeEvent.created(RecordRead(id=1, name="a")))
    bus.publish(ChangeEvent.deleted(1))
    await bus.drain()

    assert [m["event"] for m in sub.received] == ["added", "deleted"]


@pytest.mark.asyncio
async def test_drain_cancels_deliveries_left_after_timeout(registry):
    bus = NotificationBus(registry, send_timeout=30.0)
    registry.attach(FakeSubscriber("stuck", delay=30.0))

    bus.publish(_alice())
    await bus.drain(timeout=0.05)

    assert bus.pending_count == 0
