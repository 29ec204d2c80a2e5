"""Persistence layer: store interface and backends."""

from personal_assistant.core.config import Settings
from personal_assistant.database.sqlite_store import SQLiteStore
from personal_assistant.database.store import InMemoryStore, RecordStore


def create_store(settings: Settings) -> RecordStore:
    """Build the store backend selected in configuration.

    The returned store still needs ``await store.initialize()``.
    """
    if settings.store.backend == "sqlite":
        return SQLiteStore(db_path=settings.store.sqlite_path)
    return InMemoryStore()


__all__ = ['RecordStore', 'InMemoryStore', 'SQLiteStore', 'create_store']
