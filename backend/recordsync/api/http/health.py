"""Health check endpoints."""

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from recordsync.api.http.dependencies import get_context
from recordsync.core.context import ServiceContext

router = APIRouter(tags=["health"])

SERVICE_NAME = "recordsync"


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str
    environment: str
    subscribers: int


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool
    checks: dict[str, bool]


@router.get("/health", response_model=HealthResponse)
async def health_check(context: ServiceContext = Depends(get_context)) -> HealthResponse:
    """Basic health check endpoint.

    Returns service status without checking dependencies.
    Use /ready for the store check.
    """
    return HealthResponse(
        status="healthy",
        service=SERVICE_NAME,
        environment=context.settings.environment,
        subscribers=context.registry.count,
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(context: ServiceContext = Depends(get_context)) -> Any:
    """Readiness check endpoint: verifies the store answers."""
    checks = {"database": await context.database.ping()}
    body = ReadinessResponse(ready=all(checks.values()), checks=checks)
    if not body.ready:
        return JSONResponse(status_code=503, content=body.model_dump())
    return body
