"""Pydantic schemas for the records REST surface."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class RecordRead(BaseModel):
    """A record as returned to callers and carried in change events."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    name: str


class RecordWrite(BaseModel):
    """Body for POST /records and PUT /records/{id}.

    ``name`` is optional here so a missing or blank name reaches the service
    and is rejected with the same "Name is required" message either way.
    """

    model_config = ConfigDict(extra="ignore")

    name: str | None = Field(default=None, description="Display name of the record")


class RecordDeleted(BaseModel):
    """Response body for DELETE /records/{id}."""

    id: int
