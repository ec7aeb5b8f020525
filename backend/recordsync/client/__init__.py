"""Client-side sync agent for the records service."""

from recordsync.client.sync_agent import (
    RecordSyncAgent,
    SyncClientError,
    SyncListener,
    websocket_url,
)

__all__ = ["RecordSyncAgent", "SyncClientError", "SyncListener", "websocket_url"]
