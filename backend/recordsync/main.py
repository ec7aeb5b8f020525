"""Records API - FastAPI application factory."""

import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from recordsync import __version__
from recordsync.api.http.errors import register_error_handlers
from recordsync.api.http.health import router as health_router
from recordsync.api.http.records import router as records_router
from recordsync.api.ws import websocket_endpoint
from recordsync.config import Settings, get_settings
from recordsync.core.context import ServiceContext
from recordsync.infrastructure.logging import (
    log_context,
    setup_logging,
)

logger = logging.getLogger("app")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler: owns the service context."""
    context: ServiceContext = app.state.context

    # Startup
    logger.info("Starting records service", extra={"service": "app"})
    context.settings.log_config_summary()
    await context.start()

    yield

    # Shutdown
    logger.info("Shutting down records service", extra={"service": "app"})
    await context.stop()


def get_allowed_origins(settings: Settings) -> list[str]:
    """Get list of allowed CORS origins."""
    if settings.is_development:
        return ["*"]
    return settings.cors_allow_origins_list


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings override for testing

    Returns:
        Configured FastAPI application
    """
    if settings is None:
        settings = get_settings()

    setup_logging(
        log_level=settings.log_level,
        debug_namespaces=settings.debug_namespaces,
    )

    app = FastAPI(
        title="Records API",
        description="Record collection with real-time change notifications",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.context = ServiceContext.build(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_allowed_origins(settings),
        allow_origin_regex=None
        if settings.is_development
        else (settings.cors_allow_origin_regex or None),
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def _http_request_context(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid4())

        start = time.time()
        status_code: int | None = None
        with log_context(request_id=request_id):
            try:
                response = await call_next(request)
                status_code = response.status_code
                response.headers["x-request-id"] = request_id
                return response
            finally:
                logger.info(
                    "HTTP request completed",
                    extra={
                        "service": "http",
                        "duration_ms": int((time.time() - start) * 1000),
                        "metadata": {
                            "method": request.method,
                            "path": request.url.path,
                            "status_code": status_code,
                        },
                    },
                )

    register_error_handlers(app)

    app.include_router(health_router)
    app.include_router(records_router)

    @app.websocket("/ws")
    async def ws_endpoint(websocket: WebSocket):
        """WebSocket endpoint for change notifications."""
        await websocket_endpoint(websocket)

    return app


# Default app instance for uvicorn
app = create_app()
