"""HTTP endpoints for the records collection."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from recordsync.api.http.dependencies import get_record_service
from recordsync.domains.records import RecordService
from recordsync.schemas.record import RecordDeleted, RecordRead, RecordWrite

router = APIRouter(prefix="/records", tags=["records"])


@router.get("", response_model=list[RecordRead])
async def list_records(
    service: RecordService = Depends(get_record_service),
) -> list[RecordRead]:
    """Return the whole collection ordered by id."""

    return await service.list_records()


@router.post("", response_model=RecordRead, status_code=status.HTTP_201_CREATED)
async def create_record(
    payload: RecordWrite | None = None,
    service: RecordService = Depends(get_record_service),
) -> RecordRead:
    """Create a record and announce it to connected clients."""

    return await service.create_record(payload.name if payload else None)


# Path ids arrive as text so that non-numeric ids are rejected by the
# service with the same error body as every other validation failure.
@router.put("/{record_id}", response_model=RecordRead)
async def update_record(
    record_id: str,
    payload: RecordWrite | None = None,
    service: RecordService = Depends(get_record_service),
) -> RecordRead:
    """Rename a record and announce the change."""

    return await service.update_record(record_id, payload.name if payload else None)


@router.delete("/{record_id}", response_model=RecordDeleted)
async def delete_record(
    record_id: str,
    service: RecordService = Depends(get_record_service),
) -> RecordDeleted:
    """Delete a record and announce its id."""

    deleted_id = await service.delete_record(record_id)
    return RecordDeleted(id=deleted_id)
