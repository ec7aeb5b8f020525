"""Record mutation service.

Validates requests, calls the store gateway and, once a mutation has
committed, announces it through the injected :class:`EventPublisher`.
A change event is never built for a mutation that failed, and a failing
publisher never turns a committed mutation into an error.
"""

from __future__ import annotations

import logging
from typing import Any

from recordsync.domains.records.gateway import RecordStore
from recordsync.exceptions import InvalidRecordIdError, RecordNotFoundError, ValidationError
from recordsync.schemas.record import RecordRead
from recordsync.services.events import ChangeEvent, EventPublisher

logger = logging.getLogger("records")

NAME_REQUIRED = "Name is required"

# Largest value of the INTEGER id column
MAX_RECORD_ID = 2**31 - 1
_MAX_ID_DIGITS = len(str(MAX_RECORD_ID))


def parse_record_id(value: Any) -> int:
    """Coerce a path id to ``int``.

    Only base-10 digit strings (or ints) are accepted; anything else is a
    validation error rather than a lookup that can never match. Ids above
    :data:`MAX_RECORD_ID` cannot exist in the store and are reported as not
    found without a store call.
    """
    if isinstance(value, bool):
        raise InvalidRecordIdError(value)
    if isinstance(value, str):
        candidate = value.strip()
        if not (candidate.isascii() and candidate.isdigit()):
            raise InvalidRecordIdError(value)
        digits = candidate.lstrip("0") or "0"
        if len(digits) > _MAX_ID_DIGITS:
            raise RecordNotFoundError(candidate)
        value = int(digits)
    if not isinstance(value, int) or value < 0:
        raise InvalidRecordIdError(value)
    if value > MAX_RECORD_ID:
        raise RecordNotFoundError(value)
    return value


def validate_name(name: Any) -> str:
    """Return ``name`` unchanged if it is a non-blank string."""
    if not isinstance(name, str) or not name.strip():
        raise ValidationError(NAME_REQUIRED, details={"field": "name"})
    return name


class RecordService:
    """Public contract mirroring :class:`RecordStore`, plus change announcements."""

    def __init__(self, store: RecordStore, publisher: EventPublisher) -> None:
        self._store = store
        self._publisher = publisher

    async def list_records(self) -> list[RecordRead]:
        """Read path used by REST callers and sync agents alike."""
        return await self._store.list()

    async def create_record(self, name: Any) -> RecordRead:
        name = validate_name(name)
        logger.info("Adding new record", extra={"service": "records", "operation": "create"})
        record = await self._store.create(name)
        self._announce(ChangeEvent.created(record))
        return record

    async def update_record(self, record_id: Any, name: Any) -> RecordRead:
        record_id = parse_record_id(record_id)
        name = validate_name(name)
        logger.info(
            "Updating record",
            extra={"service": "records", "operation": "update", "record_id": record_id},
        )
        record = await self._store.update(record_id, name)
        self._announce(ChangeEvent.updated(record))
        return record

    async def delete_record(self, record_id: Any) -> int:
        record_id = parse_record_id(record_id)
        logger.info(
            "Deleting record",
            extra={"service": "records", "operation": "delete", "record_id": record_id},
        )
        deleted_id = await self._store.delete(record_id)
        self._announce(ChangeEvent.deleted(deleted_id))
        return deleted_id

    def _announce(self, event: ChangeEvent) -> None:
        # The store call has returned, so the change is durable.
        try:
            self._publisher.publish(event)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "Failed to publish change event",
                extra={
                    "service": "records",
                    "event": event.kind.wire_name,
                    "record_id": event.record_id,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
                exc_info=True,
            )
