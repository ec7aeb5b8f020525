"""WebSocket notification channel."""

from recordsync.api.ws.endpoint import websocket_endpoint
from recordsync.api.ws.manager import ConnectionRegistry, Subscriber

__all__ = ["ConnectionRegistry", "Subscriber", "websocket_endpoint"]
