"""Records domain: store gateway and mutation service."""

from recordsync.domains.records.gateway import RecordStore
from recordsync.domains.records.service import RecordService

__all__ = ["RecordService", "RecordStore"]
