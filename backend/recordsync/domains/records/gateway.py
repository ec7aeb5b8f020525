"""Store gateway for the records table.

The only component that talks to the relational store. Every operation is
a single-row unit of work that has committed by the time the call returns,
and every store failure or timeout surfaces as :class:`StoreError`.

Known limitation: the timeout cancels the whole unit of work, COMMIT
included. If it fires after the COMMIT reached the store but before the
acknowledgement came back, the change is durable while the caller sees
``StoreError("timeout")`` and no change event is published. Clients that
re-fetch on reconnect or on the next event converge regardless.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from recordsync.exceptions import AppError, RecordNotFoundError, StoreError, ValidationError
from recordsync.infrastructure.database import Database
from recordsync.models.record import Record
from recordsync.schemas.record import RecordRead

logger = logging.getLogger("records")

T = TypeVar("T")


class RecordStore:
    """Parameterized CRUD over ``records`` with a bounded per-operation timeout."""

    def __init__(self, database: Database, timeout: float = 5.0) -> None:
        self._database = database
        self._timeout = timeout

    async def list(self) -> list[RecordRead]:
        """Return every record ordered by id."""
        return await self._run("list", self._list_records)

    async def create(self, name: str) -> RecordRead:
        """Insert a record; the store assigns its id."""
        if not name:
            raise ValidationError("Name is required")
        return await self._run("create", lambda: self._insert(name))

    async def update(self, record_id: int, name: str) -> RecordRead:
        """Rename an existing record.

        Raises:
            RecordNotFoundError: no record has ``record_id``
        """
        return await self._run("update", lambda: self._rename(record_id, name))

    async def delete(self, record_id: int) -> int:
        """Delete a record and return its id.

        Raises:
            RecordNotFoundError: no record has ``record_id``
        """
        return await self._run("delete", lambda: self._remove(record_id))

    async def _run(self, operation: str, func: Callable[[], Awaitable[T]]) -> T:
        try:
            return await asyncio.wait_for(func(), timeout=self._timeout)
        except AppError:
            raise
        except asyncio.TimeoutError as exc:
            logger.error(
                "Store operation timed out",
                extra={"service": "records", "operation": operation, "error": f"after {self._timeout}s"},
            )
            raise StoreError(operation, "timeout") from exc
        except (SQLAlchemyError, OSError) as exc:
            logger.error(
                "Store operation failed",
                extra={
                    "service": "records",
                    "operation": operation,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            raise StoreError(operation, str(exc)) from exc
        except Exception as exc:  # noqa: BLE001
            # Driver-level errors outside the DBAPI hierarchy (e.g. OverflowError
            # binding an out-of-range integer on SQLite).
            logger.error(
                "Store operation failed unexpectedly",
                extra={
                    "service": "records",
                    "operation": operation,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
                exc_info=True,
            )
            raise StoreError(operation, str(exc)) from exc

    async def _list_records(self) -> list[RecordRead]:
        async with self._database.session() as session:
            result = await session.execute(select(Record).order_by(Record.id))
            return [RecordRead.model_validate(row) for row in result.scalars().all()]

    async def _insert(self, name: str) -> RecordRead:
        async with self._database.session() as session:
            record = Record(name=name)
            session.add(record)
            await session.flush()
            created = RecordRead.model_validate(record)
        return created

    async def _rename(self, record_id: int, name: str) -> RecordRead:
        async with self._database.session() as session:
            record = await session.get(Record, record_id)
            if record is None:
                raise RecordNotFoundError(record_id)
            record.name = name
            await session.flush()
            updated = RecordRead.model_validate(record)
        return updated

    async def _remove(self, record_id: int) -> int:
        async with self._database.session() as session:
            record = await session.get(Record, record_id)
            if record is None:
                raise RecordNotFoundError(record_id)
            await session.delete(record)
        return record_id
