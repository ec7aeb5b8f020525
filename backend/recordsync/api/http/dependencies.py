"""Common HTTP dependencies."""

from __future__ import annotations

from fastapi import Depends, Request

from recordsync.core.context import ServiceContext
from recordsync.domains.records import RecordService


def get_context(request: Request) -> ServiceContext:
    """Return the service context owned by the application lifespan."""
    return request.app.state.context


def get_record_service(context: ServiceContext = Depends(get_context)) -> RecordService:
    return context.records
