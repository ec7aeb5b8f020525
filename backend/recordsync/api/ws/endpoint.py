"""WebSocket endpoint for change notifications."""

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from fastapi import WebSocket, WebSocketDisconnect

from recordsync.api.ws.manager import Subscriber
from recordsync.infrastructure.logging import log_context

if TYPE_CHECKING:
    from recordsync.core.context import ServiceContext

logger = logging.getLogger("ws")

MessageHandler = Callable[[Subscriber, dict[str, Any]], Awaitable[None]]


async def _handle_ping(subscriber: Subscriber, _message: dict[str, Any]) -> None:
    """Keepalive: answer with pong."""
    subscriber.touch()
    await subscriber.send({"type": "pong"})


_HANDLERS: dict[str, MessageHandler] = {
    "ping": _handle_ping,
}


def _error(code: str, message: str) -> dict[str, Any]:
    return {"type": "error", "payload": {"code": code, "message": message}}


async def _route(subscriber: Subscriber, message: Any) -> None:
    if not isinstance(message, dict) or not message.get("type"):
        await subscriber.send(_error("INVALID_MESSAGE", "Message must include 'type' field"))
        return

    handler = _HANDLERS.get(message["type"])
    if handler is None:
        logger.debug(
            "Unknown message type",
            extra={"service": "ws", "subscriber_id": subscriber.id, "metadata": {"type": message["type"]}},
        )
        await subscriber.send(
            _error("UNKNOWN_MESSAGE_TYPE", f"Unsupported message type: {message['type']}")
        )
        return
    await handler(subscriber, message)


async def websocket_endpoint(websocket: WebSocket) -> None:
    """Notification channel handler.

    Handles the connection lifecycle:
    1. Accept and attach the subscriber
    2. Serve keepalives until the client goes away
    3. Detach on disconnect or any transport error
    """
    context: "ServiceContext" = websocket.app.state.context
    registry = context.registry

    await websocket.accept()
    subscriber = Subscriber(websocket=websocket)
    registry.attach(subscriber)
    with log_context(subscriber_id=subscriber.id):
        try:
            await subscriber.send(
                {
                    "type": "status.update",
                    "payload": {
                        "service": "ws",
                        "status": "connected",
                        "subscriberId": subscriber.id,
                    },
                }
            )

            while True:
                try:
                    message = await websocket.receive_json()
                except ValueError as e:
                    logger.warning(
                        "Invalid JSON received",
                        extra={"service": "ws", "subscriber_id": subscriber.id, "error": str(e)},
                    )
                    await subscriber.send(_error("INVALID_JSON", "Message must be valid JSON"))
                    continue

                await _route(subscriber, message)

        except WebSocketDisconnect:
            logger.info(
                "WebSocket disconnected by client",
                extra={"service": "ws", "subscriber_id": subscriber.id},
            )
        except Exception as e:
            logger.error(
                "WebSocket error",
                extra={"service": "ws", "subscriber_id": subscriber.id, "error": str(e)},
                exc_info=True,
            )
        finally:
            registry.detach(subscriber)
