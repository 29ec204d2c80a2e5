"""SQLite-backed store.

Each entity is kept as a JSON document next to the few columns the store
filters and sorts on.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiosqlite

from personal_assistant.core.exceptions import StoreError
from personal_assistant.core.logging import get_logger
from personal_assistant.database.store import RecordStore, apply_status
from personal_assistant.models import (
    ChatSession,
    DataSource,
    ProcessingStatus,
    RawRecord,
    User,
    UserPreferences,
)

logger = get_logger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS raw_records (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    source TEXT NOT NULL,
    status TEXT NOT NULL,
    collected_at TEXT NOT NULL,
    document TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_raw_records_user_source ON raw_records (user_id, source);
CREATE INDEX IF NOT EXISTS idx_raw_records_status ON raw_records (status, collected_at);

CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    document TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS user_preferences (
    user_id TEXT PRIMARY KEY,
    last_updated TEXT NOT NULL,
    document TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS chat_sessions (
    session_id TEXT PRIMARY KEY,
    id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    is_active INTEGER NOT NULL,
    last_activity_at TEXT NOT NULL,
    document TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_chat_sessions_user ON chat_sessions (user_id, last_activity_at);
"""


def _sort_key(value: datetime) -> str:
    """Fixed-width ISO timestamp so text ordering matches time ordering."""
    return value.isoformat(timespec="microseconds")


class SQLiteStore(RecordStore):
    """Store raw records, profiles and sessions in SQLite via aiosqlite."""

    def __init__(self, db_path: str = "./data/personal_assistant.db"):
        """Initialize the store.

        Args:
            db_path: Path to SQLite database file, or ``:memory:``
        """
        self.db_path = db_path
        # In-memory databases live as long as their connection, so keep one open
        self._is_memory = (db_path == ":memory:")
        self._conn: Optional[aiosqlite.Connection] = None
        self._initialized = False
        self._ensure_db_directory()

    def _ensure_db_directory(self):
        """Ensure database directory exists."""
        if not self._is_memory:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

    async def initialize(self) -> None:
        """Create the schema. Safe to call more than once."""
        if self._initialized:
            return

        if self._is_memory:
            self._conn = await aiosqlite.connect(self.db_path)
            db = self._conn
        else:
            db = await aiosqlite.connect(self.db_path)

        try:
            await db.executescript(SCHEMA)
            await db.commit()
        finally:
            if not self._is_memory:
                await db.close()

        self._initialized = True
        logger.info("database_initialized", path=self.db_path)

    async def close(self) -> None:
        """Close the persistent connection of an in-memory database."""
        if self._conn:
            await self._conn.close()
            self._conn = None
            self._initialized = False

    @asynccontextmanager
    async def _get_connection(self):
        """Yield a connection; wraps driver errors in ``StoreError``."""
        if not self._initialized:
            raise StoreError("Database not initialized. Call initialize() first.")
        try:
            if self._is_memory:
                self._conn.row_factory = aiosqlite.Row
                yield self._conn
            else:
                async with aiosqlite.connect(self.db_path) as db:
                    db.row_factory = aiosqlite.Row
                    yield db
        except aiosqlite.Error as e:
            raise StoreError(f"SQLite operation failed: {e}") from e

    # =========================================================================
    # Raw records
    # =========================================================================

    async def insert_record(self, record: RawRecord) -> str:
        async with self._get_connection() as db:
            try:
                await db.execute(
                    """INSERT INTO raw_records (id, user_id, source, status, collected_at, document)
                       VALUES (?, ?, ?, ?, ?, ?)""",
                    (
                        record.id, record.user_id, record.source.value, record.status.value,
                        _sort_key(record.collected_at), record.model_dump_json(),
                    )
                )
            except aiosqlite.IntegrityError as e:
                raise StoreError(f"Record already exists: {record.id}") from e
            await db.commit()

        logger.debug("record_inserted", record_id=record.id, source=record.source.value)
        return record.id

    async def find_record(self, record_id: str) -> Optional[RawRecord]:
        async with self._get_connection() as db:
            async with db.execute(
                "SELECT document FROM raw_records WHERE id = ?", (record_id,)
            ) as cursor:
                row = await cursor.fetchone()
        return RawRecord.model_validate_json(row["document"]) if row else None

    async def find_records(
        self, user_id: str, source: Optional[DataSource] = None
    ) -> List[RawRecord]:
        query = "SELECT document FROM raw_records WHERE user_id = ?"
        params: List[Any] = [user_id]
        if source is not None:
            query += " AND source = ?"
            params.append(source.value)
        query += " ORDER BY collected_at ASC"

        async with self._get_connection() as db:
            async with db.execute(query, params) as cursor:
                rows = await cursor.fetchall()
        return [RawRecord.model_validate_json(row["document"]) for row in rows]

    async def find_pending(self, limit: int = 100) -> List[RawRecord]:
        async with self._get_connection() as db:
            async with db.execute(
                """SELECT document FROM raw_records
                   WHERE status = ?
                   ORDER BY collected_at ASC
                   LIMIT ?""",
                (ProcessingStatus.PENDING.value, limit)
            ) as cursor:
                rows = await cursor.fetchall()
        return [RawRecord.model_validate_json(row["document"]) for row in rows]

    async def _rewrite_record(self, db: aiosqlite.Connection, record: RawRecord) -> None:
        await db.execute(
            "UPDATE raw_records SET status = ?, document = ? WHERE id = ?",
            (record.status.value, record.model_dump_json(), record.id)
        )

    async def update_status(
        self,
        record_id: str,
        status: ProcessingStatus,
        error_message: Optional[str] = None,
    ) -> bool:
        async with self._get_connection() as db:
            async with db.execute(
                "SELECT document FROM raw_records WHERE id = ?", (record_id,)
            ) as cursor:
                row = await cursor.fetchone()
            if not row:
                return False

            record = apply_status(
                RawRecord.model_validate_json(row["document"]), status, error_message
            )
            await self._rewrite_record(db, record)
            await db.commit()
        return True

    async def update_processed_fields(self, record_id: str, fields: Dict[str, Any]) -> bool:
        async with self._get_connection() as db:
            async with db.execute(
                "SELECT document FROM raw_records WHERE id = ?", (record_id,)
            ) as cursor:
                row = await cursor.fetchone()
            if not row:
                return False

            record = RawRecord.model_validate_json(row["document"])
            record.processed_fields = dict(fields)
            record.update_timestamp()
            await self._rewrite_record(db, record)
            await db.commit()
        return True

    async def delete_record(self, record_id: str) -> bool:
        async with self._get_connection() as db:
            cursor = await db.execute("DELETE FROM raw_records WHERE id = ?", (record_id,))
            await db.commit()
            deleted = cursor.rowcount
        return deleted > 0

    # =========================================================================
    # Users and preferences
    # =========================================================================

    async def get_user(self, user_id: str) -> Optional[User]:
        async with self._get_connection() as db:
            async with db.execute(
                "SELECT document FROM users WHERE id = ?", (user_id,)
            ) as cursor:
                row = await cursor.fetchone()
        return User.model_validate_json(row["document"]) if row else None

    async def save_user(self, user: User) -> None:
        async with self._get_connection() as db:
            await db.execute(
                """INSERT INTO users (id, document) VALUES (?, ?)
                   ON CONFLICT(id) DO UPDATE SET document = excluded.document""",
                (user.id, user.model_dump_json())
            )
            await db.commit()

    async def get_preferences(self, user_id: str) -> Optional[UserPreferences]:
        async with self._get_connection() as db:
            async with db.execute(
                "SELECT document FROM user_preferences WHERE user_id = ?", (user_id,)
            ) as cursor:
                row = await cursor.fetchone()
        return UserPreferences.model_validate_json(row["document"]) if row else None

    async def save_preferences(self, user_id: str, preferences: UserPreferences) -> None:
        async with self._get_connection() as db:
            await db.execute(
                """INSERT INTO user_preferences (user_id, last_updated, document)
                   VALUES (?, ?, ?)
                   ON CONFLICT(user_id) DO UPDATE SET
                       last_updated = excluded.last_updated,
                       document = excluded.document""",
                (user_id, _sort_key(preferences.last_updated), preferences.model_dump_json())
            )
            await db.commit()

        logger.debug("preferences_saved", user_id=user_id)

    # =========================================================================
    # Chat sessions
    # =========================================================================

    async def insert_session(self, session: ChatSession) -> None:
        async with self._get_connection() as db:
            try:
                await db.execute(
                    """INSERT INTO chat_sessions
                       (session_id, id, user_id, is_active, last_activity_at, document)
                       VALUES (?, ?, ?, ?, ?, ?)""",
                    (
                        session.session_id, session.id, session.user_id,
                        int(session.is_active), _sort_key(session.last_activity_at),
                        session.model_dump_json(),
                    )
                )
            except aiosqlite.IntegrityError as e:
                raise StoreError(f"Session already exists: {session.session_id}") from e
            await db.commit()

    async def get_session(self, session_id: str) -> Optional[ChatSession]:
        async with self._get_connection() as db:
            async with db.execute(
                "SELECT document FROM chat_sessions WHERE session_id = ?", (session_id,)
            ) as cursor:
                row = await cursor.fetchone()
        return ChatSession.model_validate_json(row["document"]) if row else None

    async def replace_session(self, session: ChatSession) -> bool:
        async with self._get_connection() as db:
            cursor = await db.execute(
                """UPDATE chat_sessions
                   SET is_active = ?, last_activity_at = ?, document = ?
                   WHERE session_id = ?""",
                (
                    int(session.is_active), _sort_key(session.last_activity_at),
                    session.model_dump_json(), session.session_id,
                )
            )
            await db.commit()
            updated = cursor.rowcount
        return updated > 0

    async def find_sessions(self, user_id: str, limit: int = 10) -> List[ChatSession]:
        async with self._get_connection() as db:
            async with db.execute(
                """SELECT document FROM chat_sessions
                   WHERE user_id = ?
                   ORDER BY last_activity_at DESC
                   LIMIT ?""",
                (user_id, limit)
            ) as cursor:
                rows = await cursor.fetchall()
        return [ChatSession.model_validate_json(row["document"]) for row in rows]

    async def delete_session(self, session_id: str) -> bool:
        async with self._get_connection() as db:
            cursor = await db.execute(
                "DELETE FROM chat_sessions WHERE session_id = ?", (session_id,)
            )
            await db.commit()
            deleted = cursor.rowcount
        return deleted > 0

