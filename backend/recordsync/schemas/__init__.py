"""Pydantic schemas for API request/response validation."""

from recordsync.schemas.record import (  # noqa: F401
    RecordDeleted,
    RecordRead,
    RecordWrite,
)
