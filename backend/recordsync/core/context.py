"""Service context: the explicitly owned set of long-lived collaborators."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from recordsync.api.ws.manager import ConnectionRegistry
from recordsync.config import Settings
from recordsync.domains.records import RecordService, RecordStore
from recordsync.infrastructure.database import Database
from recordsync.services.events import NotificationBus

logger = logging.getLogger("app")

# Upper bound on waiting for in-flight notifications at shutdown
SHUTDOWN_DRAIN_SECONDS = 2.0


@dataclass
class ServiceContext:
    """Everything a request handler may touch, built once per application.

    The store connection pool is owned by ``database`` and reached only
    through ``store``; the subscriber set is owned by ``registry`` and read
    only by ``bus``.
    """

    settings: Settings
    database: Database
    store: RecordStore
    registry: ConnectionRegistry
    bus: NotificationBus
    records: RecordService
    started: bool = False

    @classmethod
    def build(cls, settings: Settings) -> ServiceContext:
        database = Database(settings)
        store = RecordStore(database, timeout=settings.database_timeout_seconds)
        registry = ConnectionRegistry()
        bus = NotificationBus(registry, send_timeout=settings.ws_send_timeout_seconds)
        return cls(
            settings=settings,
            database=database,
            store=store,
            registry=registry,
            bus=bus,
            records=RecordService(store, bus),
        )

    async def start(self) -> None:
        """Open the store and make sure the schema exists."""
        await self.database.connect()
        self.started = True

    async def stop(self) -> None:
        """Drain notifications, forget subscribers, close the store."""
        await self.bus.drain(timeout=SHUTDOWN_DRAIN_SECONDS)
        dropped = self.registry.clear()
        await self.database.close()
        self.started = False
        logger.info(
            "Service context stopped",
            extra={"service": "app", "subscriber_count": dropped},
        )
