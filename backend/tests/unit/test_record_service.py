"""Unit tests for RecordService."""

from unittest.mock import AsyncMock

import pytest

from recordsync.domains.records import RecordService, RecordStore
from recordsync.domains.records.service import parse_record_id
from recordsync.exceptions import (
    InvalidRecordIdError,
    RecordNotFoundError,
    StoreError,
    ValidationError,
)
from recordsync.schemas.record import RecordRead
from recordsync.services.events import ChangeEvent, ChangeKind


class RecordingPublisher:
    def __init__(self, calls: list[str] | None = None) -> None:
        self.events: list[ChangeEvent] = []
        self._calls = calls

    def publish(self, event: ChangeEvent) -> None:
        if self._calls is not None:
            self._calls.append("publish")
        self.events.append(event)


class ExplodingPublisher:
    def publish(self, event: ChangeEvent) -> None:
        raise RuntimeError("no event loop")


@pytest.fixture
def store() -> RecordStore:
    """A mocked gateway so tests do not touch a real database."""
    mock = AsyncMock(spec=RecordStore)
    mock.create.return_value = RecordRead(id=1, name="Alice")
    mock.update.return_value = RecordRead(id=1, name="Alicia")
    mock.delete.return_value = 1
    mock.list.return_value = [RecordRead(id=1, name="Alice")]
    return mock


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def service(store, publisher) -> RecordService:
    return RecordService(store, publisher)


@pytest.mark.asyncio
async def test_list_records_reads_through_store(service, store, publisher):
    assert await service.list_records() == [RecordRead(id=1, name="Alice")]
    store.list.assert_awaited_once()
    assert publisher.events == []


@pytest.mark.asyncio
async def test_create_publishes_one_created_event(service, store, publisher):
    record = await service.create_record("Alice")

    assert record == RecordRead(id=1, name="Alice")
    store.create.assert_awaited_once_with("Alice")
    assert len(publisher.events) == 1
    assert publisher.events[0].kind is ChangeKind.CREATED
    assert publisher.events[0].payload == {"id": 1, "name": "Alice"}


@pytest.mark.asyncio
@pytest.mark.parametrize("name", [None, "", "   ", "\t\n", 42])
async def test_create_rejects_missing_or_blank_name_without_store_call(
    service, store, publisher, name
):
    with pytest.raises(ValidationError) as exc_info:
        await service.create_record(name)

    assert exc_info.value.message == "Name is required"
    store.create.assert_not_awaited()
    assert publisher.events == []


@pytest.mark.asyncio
async def test_publish_happens_after_store_returns(store):
    calls: list[str] = []

    async def _create(name: str) -> RecordRead:
        calls.append("store")
        return RecordRead(id=5, name=name)

    store.create.side_effect = _create
    service = RecordService(store, RecordingPublisher(calls))

    await service.create_record("Eve")

    assert calls == ["store", "publish"]


@pytest.mark.asyncio
async def test_update_publishes_updated_event(service, store, publisher):
    record = await service.update_record("1", "Alicia")

    assert record.name == "Alicia"
    store.update.assert_awaited_once_with(1, "Alicia")
    assert [e.kind for e in publisher.events] == [ChangeKind.UPDATED]


@pytest.mark.asyncio
async def test_update_missing_record_produces_no_event(service, store, publisher):
    store.update.side_effect = RecordNotFoundError(999)

    with pytest.raises(RecordNotFoundError):
        await service.update_record("999", "Ghost")

    assert publisher.events == []


@pytest.mark.asyncio
async def test_update_with_blank_name_is_rejected_before_store(service, store, publisher):
    with pytest.raises(ValidationError):
        await service.update_record("1", "")

    store.update.assert_not_awaited()
    assert publisher.events == []


@pytest.mark.asyncio
async def test_update_with_non_numeric_id_is_a_validation_error(service, store, publisher):
    with pytest.raises(InvalidRecordIdError):
        await service.update_record("abc", "Alice")

    store.update.assert_not_awaited()
    assert publisher.events == []


@pytest.mark.asyncio
async def test_delete_publishes_deleted_event_with_id(service, store, publisher):
    assert await service.delete_record("1") == 1

    store.delete.assert_awaited_once_with(1)
    assert len(publisher.events) == 1
    assert publisher.events[0].kind is ChangeKind.DELETED
    assert publisher.events[0].payload == {"id": 1}


@pytest.mark.asyncio
async def test_delete_missing_record_produces_no_event(service, store, publisher):
    store.delete.side_effect = RecordNotFoundError(999)

    with pytest.raises(RecordNotFoundError):
        await service.delete_record(999)

    assert publisher.events == []


@pytest.mark.asyncio
async def test_store_error_propagates_unchanged_and_nothing_is_published(
    service, store, publisher
):
    store.create.side_effect = StoreError("create", "timeout")

    with pytest.raises(StoreError):
        await service.create_record("Alice")

    assert publisher.events == []


@pytest.mark.asyncio
async def test_publish_failure_does_not_fail_committed_mutation(store):
    service = RecordService(store, ExplodingPublisher())

    record = await service.create_record("Alice")

    assert record == RecordRead(id=1, name="Alice")


@pytest.mark.parametrize(
    ("value", "expected"),
    [("1", 1), (" 7 ", 7), ("0042", 42), (5, 5), (0, 0)],
)
def test_parse_record_id_accepts_integers(value, expected):
    assert parse_record_id(value) == expected


@pytest.mark.parametrize("value", ["abc", "1.5", "-1", "", "1e3", "١", True, None, -3])
def test_parse_record_id_rejects_everything_else(value):
    with pytest.raises(InvalidRecordIdError):
        parse_record_id(value)


@pytest.mark.parametrize(
    ("value", "expected"),
    [("\t12\n", 12), (" 0 ", 0), ("2147483647", 2**31 - 1), ("000002147483647", 2**31 - 1)],
)
def test_parse_record_id_range_edges(value, expected):
    assert parse_record_id(value) == expected


@pytest.mark.parametrize("value", ["+1", "+0", " -7 ", "1 2", "0x10", "1_000"])
def test_parse_record_id_rejects_signs_and_separators(value):
    with pytest.raises(InvalidRecordIdError):
        parse_record_id(value)


@pytest.mark.parametrize(
    "value", ["2147483648", "99999999999999999999", "9" * 5000, 2**31, 10**20]
)
def test_parse_record_id_beyond_column_range_is_not_found(value):
    with pytest.raises(RecordNotFoundError):
        parse_record_id(value)


@pytest.mark.asyncio
@pytest.mark.parametrize("record_id", ["99999999999999999999", "2147483648"])
async def test_out_of_range_id_never_reaches_store(service, store, publisher, record_id):
    with pytest.raises(RecordNotFoundError):
        await service.update_record(record_id, "Ghost")
    with pytest.raises(RecordNotFoundError):
        await service.delete_record(record_id)

    store.update.assert_not_awaited()
    store.delete.assert_not_awaited()
    assert publisher.events == []
