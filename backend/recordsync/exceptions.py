"""Custom exceptions for the application.

Every failure a caller can observe is an ``AppError`` with a machine-readable
code, so the HTTP layer can map kinds to status codes in one place.

Exception Hierarchy:
- AppError (base)
  ├── ValidationError            -> 400
  │   └── InvalidRecordIdError
  ├── NotFoundError              -> 404
  │   └── RecordNotFoundError
  ├── StoreError                 -> 500 (retryable)
  └── DeliveryError              (contained by the notification bus)

Attributes:
    code: Machine-readable error code (e.g., "RECORD_NOT_FOUND")
    message: Human-readable error message
    details: Additional context for debugging
    retryable: Whether the operation can be retried
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any


class AppError(Exception):
    """Base exception for application errors.

    Attributes:
        code: Machine-readable error code
        message: Human-readable error message
        details: Additional context for debugging
        retryable: Whether the operation can be retried
        timestamp: When the error occurred
    """

    code: str = "APP_ERROR"
    message: str = "An unexpected error occurred"
    retryable: bool = False

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        retryable: bool | None = None,
    ) -> None:
        """Initialize error with optional message and details."""
        self.message = message or self.message
        self.details = details or {}
        if retryable is not None:
            self.retryable = retryable
        self.timestamp = datetime.now(UTC)
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to the JSON body returned to REST callers."""
        return {
            "error": self.message,
            "code": self.code,
            "details": self.details,
        }

    def __str__(self) -> str:
        """String representation with code."""
        return f"[{self.code}] {self.message}"


class ValidationError(AppError):
    """Caller input is malformed. Never retried."""

    code = "VALIDATION_ERROR"
    message = "Validation failed"


class InvalidRecordIdError(ValidationError):
    """Raised when a record id from the URL is not a non-negative integer."""

    code = "INVALID_RECORD_ID"
    message = "Invalid record id"

    def __init__(self, value: Any) -> None:
        """Initialize invalid id error."""
        self.value = value
        super().__init__(details={"id": str(value)})


class NotFoundError(AppError):
    """Base exception for resource not found errors."""

    code = "NOT_FOUND"
    message = "Resource not found"

    def __init__(
        self,
        resource: str,
        identifier: str | int,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize not found error."""
        self.resource = resource
        self.identifier = identifier
        full_details = {"resource": resource, "identifier": str(identifier)}
        if details:
            full_details.update(details)
        super().__init__(
            message=message or f"{resource} not found: {identifier}",
            details=full_details,
        )


class RecordNotFoundError(NotFoundError):
    """Raised when no record exists with the requested id."""

    code = "RECORD_NOT_FOUND"

    def __init__(self, record_id: int) -> None:
        """Initialize record not found error."""
        self.record_id = record_id
        super().__init__(
            resource="Record",
            identifier=record_id,
            message="Record not found",
        )


class StoreError(AppError):
    """Raised when the relational store fails or does not answer in time.

    The message stays generic; the underlying cause is logged and chained,
    never returned to the caller.
    """

    code = "STORE_ERROR"
    message = "Database error"
    retryable = True

    def __init__(self, operation: str, reason: str | None = None) -> None:
        """Initialize store error for a named gateway operation."""
        self.operation = operation
        self.reason = reason
        super().__init__()


class DeliveryError(AppError):
    """A write to a single subscriber's channel failed.

    Raised and handled inside the notification bus only; the mutating
    caller never sees it.
    """

    code = "DELIVERY_ERROR"
    message = "Failed to deliver notification"

    def __init__(self, subscriber_id: str, reason: str) -> None:
        """Initialize delivery error."""
        self.subscriber_id = subscriber_id
        self.reason = reason
        super().__init__(
            message=f"Failed to deliver notification to {subscriber_id}: {reason}",
            details={"subscriber_id": subscriber_id, "reason": reason},
        )


__all__ = [
    "AppError",
    "ValidationError",
    "InvalidRecordIdError",
    "NotFoundError",
    "RecordNotFoundError",
    "StoreError",
    "DeliveryError",
]
