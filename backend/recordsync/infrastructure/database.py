"""Database connection and session management (infrastructure layer)."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from recordsync.config import Settings

logger = logging.getLogger("db")


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class Database:
    """Owns the async engine and session factory for one service context.

    Nothing is opened until :meth:`connect` runs; :meth:`close` disposes the
    pool so the instance can be connected again (tests).
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        """Get the SQLAlchemy async engine, creating it on first use."""
        if self._engine is None:
            settings = self._settings
            engine_kwargs: dict[str, Any] = {
                "echo": False,
                "pool_pre_ping": True,
            }
            if settings.database_disable_pooling:
                engine_kwargs["poolclass"] = NullPool
            else:
                engine_kwargs.update(
                    {
                        "pool_size": settings.database_pool_size,
                        "max_overflow": settings.database_max_overflow,
                        "pool_timeout": settings.database_timeout_seconds,
                    }
                )
            self._engine = create_async_engine(settings.database_url, **engine_kwargs)
            logger.info(
                "Database engine created",
                extra={
                    "service": "db",
                    "metadata": {"database": settings._redact_url(settings.database_url)},
                },
            )
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Get the async session factory."""
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
        return self._session_factory

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Context manager for a unit of work.

        Commits when the block exits cleanly, rolls back otherwise.

        Usage:
            async with database.session() as session:
                ...
        """

        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def connect(self) -> bool:
        """Verify connectivity and create missing tables (call on startup).

        Returns:
            True when the store answered, False when it was unreachable.
        """
        # Registers the mapped tables on Base.metadata
        from recordsync import models  # noqa: F401

        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "Database connection failed during init",
                extra={"service": "db", "error": str(exc), "error_type": type(exc).__name__},
            )
            return False
        logger.info("Database connection verified", extra={"service": "db"})
        return True

    async def ping(self) -> bool:
        """Run a trivial query; used by the readiness probe."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Database ping failed",
                extra={"service": "db", "error": str(exc)},
            )
            return False
        return True

    async def close(self) -> None:
        """Close database connections (call on shutdown)."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
        logger.info("Database connections closed", extra={"service": "db"})


__all__ = [
    "Base",
    "Database",
]
