"""Tests for ChangeEvent construction and wire format."""

import pytest

from recordsync.schemas.record import RecordRead
from recordsync.services.events import DB_CHANGE, ChangeEvent, ChangeKind


def test_created_event_is_announced_as_added():
    event = ChangeEvent.created(RecordRead(id=1, name="Alice"))

    assert event.kind is ChangeKind.CREATED
    assert event.to_message() == {
        "type": DB_CHANGE,
        "event": "added",
        "payload": {"id": 1, "name": "Alice"},
    }


def test_updated_event_carries_full_record():
    message = ChangeEvent.updated(RecordRead(id=4, name="Bob")).to_message()

    assert message["event"] == "updated"
    assert message["payload"] == {"id": 4, "name": "Bob"}


def test_deleted_event_carries_only_id():
    event = ChangeEvent.deleted(9)

    assert event.record_id == 9
    assert event.to_message() == {"type": DB_CHANGE, "event": "deleted", "payload": {"id": 9}}


@pytest.mark.parametrize(
    ("kind", "wire"),
    [
        (ChangeKind.CREATED, "added"),
        (ChangeKind.UPDATED, "updated"),
        (ChangeKind.DELETED, "deleted"),
    ],
)
def test_wire_names(kind, wire):
    assert kind.wire_name == wire


def test_message_payload_is_a_copy():
    event = ChangeEvent.deleted(3)
    message = event.to_message()
    message["payload"]["id"] = 99

    assert event.payload == {"id": 3}
