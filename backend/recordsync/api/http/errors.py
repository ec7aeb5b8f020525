"""Exception handlers mapping error kinds to HTTP responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from recordsync.exceptions import AppError, NotFoundError, ValidationError

logger = logging.getLogger("http")


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        """Handle all application errors."""
        status_code = _get_status_code(exc)

        log_level = "warning" if status_code < 500 else "error"
        getattr(logger, log_level)(
            f"Application error: {exc.message}",
            extra={
                "service": "http",
                "error_code": exc.code,
                "error": getattr(exc, "reason", None),
                "metadata": {"path": request.url.path, "details": exc.details},
            },
        )

        return JSONResponse(status_code=status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Malformed bodies are caller errors, reported like any other 400."""
        logger.warning(
            "Request validation failed",
            extra={"service": "http", "metadata": {"path": request.url.path}},
        )
        return JSONResponse(
            status_code=400,
            content={
                "error": "Invalid request",
                "code": ValidationError.code,
                "details": {"errors": jsonable_encoder(exc.errors())},
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception(
            f"Unhandled exception: {exc}",
            extra={
                "service": "http",
                "error_type": type(exc).__name__,
                "metadata": {"path": request.url.path},
            },
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
                "details": {},
            },
        )


def _get_status_code(error: AppError) -> int:
    """Map error type to HTTP status code."""
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, NotFoundError):
        return 404
    return 500
