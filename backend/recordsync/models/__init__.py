"""SQLAlchemy models."""

from recordsync.models.record import Record

__all__ = ["Record"]
