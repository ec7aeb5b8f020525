"""Shared fixtures: file-backed SQLite stores and app test clients."""

import os
from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from recordsync.config import Settings
from recordsync.infrastructure.database import Database
from recordsync.main import create_app

os.environ["ENVIRONMENT"] = "development"


def make_settings(database_path: Path, **overrides) -> Settings:
    values = {
        "environment": "development",
        "database_url": f"sqlite+aiosqlite:///{database_path}",
        "database_disable_pooling": True,
        "database_timeout_seconds": 2.0,
        "ws_send_timeout_seconds": 1.0,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return make_settings(tmp_path / "records.db")


@pytest.fixture
def broken_settings(tmp_path: Path) -> Settings:
    """Settings pointing at a store that cannot be opened."""
    return make_settings(tmp_path / "missing" / "records.db")


@pytest_asyncio.fixture
async def database(settings: Settings) -> AsyncGenerator[Database, None]:
    db = Database(settings)
    assert await db.connect()
    yield db
    await db.close()


@pytest.fixture
def client(settings: Settings) -> Generator[TestClient, None, None]:
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def broken_client(broken_settings: Settings) -> Generator[TestClient, None, None]:
    with TestClient(create_app(broken_settings)) as test_client:
        yield test_client
