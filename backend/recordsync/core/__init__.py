"""Service context and lifecycle."""

from recordsync.core.context import ServiceContext

__all__ = ["ServiceContext"]
