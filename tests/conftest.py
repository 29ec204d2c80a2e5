"""Shared fixtures for unit and integration tests."""

from datetime import datetime, timezone

import pytest
import pytest_asyncio

from personal_assistant.core.config import Settings, StoreConfig
from personal_assistant.database.sqlite_store import SQLiteStore
from personal_assistant.database.store import InMemoryStore


@pytest.fixture
def settings():
    """Default settings with an in-memory store."""
    return Settings(store=StoreConfig(backend="memory"))


@pytest.fixture
def now():
    """Fixed reference time."""
    return datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def store():
    """Fresh in-memory store."""
    store = InMemoryStore()
    await store.initialize()
    yield store
    await store.close()


@pytest_asyncio.fixture
async def sqlite_store():
    """Fresh SQLite store backed by an in-memory database."""
    store = SQLiteStore(db_path=":memory:")
    await store.initialize()
    yield store
    await store.close()
