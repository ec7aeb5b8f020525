"""Client sync agent: keeps a local view of the collection consistent.

Contract:
- fetch the full collection once on startup, since no event precedes the
  initial state
- on every (re)connect of the notification channel, fetch again, since
  events published while disconnected are never replayed
- on any ``db_change`` notification, fetch the full collection again and
  never patch local state from the event payload

Fetching on every notification makes missed, duplicated or reordered
notifications harmless at the cost of extra reads.

Usage:
    async with RecordSyncAgent("http://localhost:3000", listener) as agent:
        await agent.run()
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from typing import Any, Protocol

import httpx
import websockets
from websockets.exceptions import WebSocketException

from recordsync.schemas.record import RecordRead
from recordsync.services.events import DB_CHANGE

logger = logging.getLogger("sync")


class SyncListener(Protocol):
    """Presentation-side callbacks."""

    def on_status(self, connected: bool) -> None:
        """Channel connected/disconnected; for display only."""
        ...

    def on_records(self, records: list[RecordRead]) -> None:
        """A fresh copy of the whole collection."""
        ...

    def on_change(self, event: str) -> None:
        """A change was announced (``added``, ``updated`` or ``deleted``)."""
        ...


class SyncClientError(Exception):
    """A REST call returned an error response."""

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}")


def websocket_url(base_url: str) -> str:
    """Map an http(s) base URL to the notification channel URL."""
    base = base_url.rstrip("/")
    if base.startswith("https://"):
        return "wss://" + base[len("https://"):] + "/ws"
    if base.startswith("http://"):
        return "ws://" + base[len("http://"):] + "/ws"
    return base + "/ws"


class RecordSyncAgent:
    """Re-fetch-on-notify client for the records service."""

    def __init__(
        self,
        base_url: str,
        listener: SyncListener,
        *,
        http_client: httpx.AsyncClient | None = None,
        reconnect_attempts: int = 5,
        reconnect_delay: float = 1.0,
        timeout: float = 10.0,
        connect: Callable[[str], Any] = websockets.connect,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._listener = listener
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(base_url=self._base_url, timeout=timeout)
        self._reconnect_attempts = reconnect_attempts
        self._reconnect_delay = reconnect_delay
        self._connect = connect
        self._channel: Any = None
        self._stopped = False
        self.connected = False
        self.records: list[RecordRead] = []

    @property
    def ws_url(self) -> str:
        return websocket_url(self._base_url)

    async def __aenter__(self) -> RecordSyncAgent:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.stop()
        if self._owns_client:
            await self._http.aclose()

    # ------------------------------------------------------------------
    # REST
    # ------------------------------------------------------------------

    async def fetch_records(self) -> list[RecordRead]:
        """Read the whole collection and replace local state with it."""
        response = await self._http.get("/records")
        data = self._check(response)
        self.records = [RecordRead.model_validate(item) for item in data]
        self._listener.on_records(self.records)
        return self.records

    async def create_record(self, name: str) -> RecordRead:
        response = await self._http.post("/records", json={"name": name})
        return RecordRead.model_validate(self._check(response))

    async def update_record(self, record_id: int, name: str) -> RecordRead:
        response = await self._http.put(f"/records/{record_id}", json={"name": name})
        return RecordRead.model_validate(self._check(response))

    async def delete_record(self, record_id: int) -> int:
        response = await self._http.delete(f"/records/{record_id}")
        return int(self._check(response)["id"])

    @staticmethod
    def _check(response: httpx.Response) -> Any:
        if response.is_error:
            try:
                message = response.json().get("error") or response.reason_phrase
            except (ValueError, AttributeError):
                message = response.reason_phrase
            raise SyncClientError(response.status_code, str(message))
        return response.json()

    async def _refresh(self) -> bool:
        try:
            await self.fetch_records()
        except (SyncClientError, httpx.HTTPError) as exc:
            logger.warning(
                "Error fetching records",
                extra={"service": "sync", "error": str(exc), "error_type": type(exc).__name__},
            )
            return False
        return True

    # ------------------------------------------------------------------
    # Notification channel
    # ------------------------------------------------------------------

    async def handle_message(self, message: Any) -> bool:
        """React to one channel message.

        Returns:
            True if the message was a change notification and a re-fetch ran
        """
        if not isinstance(message, dict) or message.get("type") != DB_CHANGE:
            return False

        event = str(message.get("event", ""))
        logger.info("Database change received", extra={"service": "sync", "event": event})
        await self._refresh()
        self._listener.on_change(event)
        return True

    def _set_connected(self, connected: bool) -> None:
        if self.connected == connected:
            return
        self.connected = connected
        self._listener.on_status(connected)

    async def run(self) -> None:
        """Fetch, then follow the channel until stopped or out of reconnects."""
        self._stopped = False
        await self._refresh()

        failures = 0
        while not self._stopped:
            try:
                async with self._connect(self.ws_url) as channel:
                    self._channel = channel
                    failures = 0
                    self._set_connected(True)
                    await self._refresh()
                    async for raw in channel:
                        try:
                            message = json.loads(raw)
                        except ValueError:
                            logger.warning("Ignoring non-JSON channel message", extra={"service": "sync"})
                            continue
                        await self.handle_message(message)
            except (OSError, WebSocketException) as exc:
                logger.warning(
                    "Notification channel error",
                    extra={"service": "sync", "error": str(exc), "error_type": type(exc).__name__},
                )
            finally:
                self._channel = None
                self._set_connected(False)

            if self._stopped:
                break
            failures += 1
            if failures > self._reconnect_attempts:
                logger.error(
                    "Giving up on notification channel",
                    extra={"service": "sync", "metadata": {"attempts": self._reconnect_attempts}},
                )
                break
            await asyncio.sleep(self._reconnect_delay)

    async def stop(self) -> None:
        """Stop :meth:`run` and close the channel if it is open."""
        self._stopped = True
        channel = self._channel
        if channel is not None:
            await channel.close()
