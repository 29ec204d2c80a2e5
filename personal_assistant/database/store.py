"""Store interface and in-memory implementation.

The store is an abstract keyed collection for raw records, users,
preference profiles and chat sessions. Retries and timeouts belong to the
backend; the core calls each method once and treats failures as
``StoreError``.
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from personal_assistant.core.exceptions import StoreError
from personal_assistant.core.logging import get_logger
from personal_assistant.models import (
    ChatSession,
    DataSource,
    ProcessingStatus,
    RawRecord,
    User,
    UserPreferences,
    utc_now,
)

logger = get_logger(__name__)


class RecordStore(ABC):
    """Persistence collaborator used by the pipeline and the chat router."""

    async def initialize(self) -> None:
        """Prepare the backend (create schema, open connections)."""

    async def close(self) -> None:
        """Release backend resources."""

    # =========================================================================
    # Raw records
    # =========================================================================

    @abstractmethod
    async def insert_record(self, record: RawRecord) -> str:
        """Insert a raw record and return its id."""

    @abstractmethod
    async def find_record(self, record_id: str) -> Optional[RawRecord]:
        """Get a raw record by id."""

    @abstractmethod
    async def find_records(
        self, user_id: str, source: Optional[DataSource] = None
    ) -> List[RawRecord]:
        """Get a user's raw records, optionally for one source, oldest first."""

    @abstractmethod
    async def find_pending(self, limit: int = 100) -> List[RawRecord]:
        """Get up to ``limit`` pending records, oldest first."""

    @abstractmethod
    async def update_status(
        self,
        record_id: str,
        status: ProcessingStatus,
        error_message: Optional[str] = None,
    ) -> bool:
        """Set a record's status.

        Completed and failed statuses also set ``processed_at``; an error
        message is stored when given.
        """

    @abstractmethod
    async def update_processed_fields(self, record_id: str, fields: Dict[str, Any]) -> bool:
        """Replace a record's processed fields."""

    @abstractmethod
    async def delete_record(self, record_id: str) -> bool:
        """Delete a raw record."""

    # =========================================================================
    # Users and preferences
    # =========================================================================

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[User]:
        """Get a user by id."""

    @abstractmethod
    async def save_user(self, user: User) -> None:
        """Insert or replace a user."""

    @abstractmethod
    async def get_preferences(self, user_id: str) -> Optional[UserPreferences]:
        """Get a user's stored preference profile."""

    @abstractmethod
    async def save_preferences(self, user_id: str, preferences: UserPreferences) -> None:
        """Replace a user's preference profile as a whole."""

    # =========================================================================
    # Chat sessions
    # =========================================================================

    @abstractmethod
    async def insert_session(self, session: ChatSession) -> None:
        """Insert a new chat session."""

    @abstractmethod
    async def get_session(self, session_id: str) -> Optional[ChatSession]:
        """Get a chat session by its public session id."""

    @abstractmethod
    async def replace_session(self, session: ChatSession) -> bool:
        """Replace a stored chat session as a whole."""

    @abstractmethod
    async def find_sessions(self, user_id: str, limit: int = 10) -> List[ChatSession]:
        """Get a user's sessions, most recent activity first."""

    @abstractmethod
    async def delete_session(self, session_id: str) -> bool:
        """Remove a chat session."""


def apply_status(
    record: RawRecord,
    status: ProcessingStatus,
    error_message: Optional[str] = None,
    at: Optional[datetime] = None,
) -> RawRecord:
    """Apply a status transition to a record the way every backend stores it."""
    record.status = status
    if status in (ProcessingStatus.COMPLETED, ProcessingStatus.FAILED):
        record.processed_at = at or utc_now()
    if error_message:
        record.error_message = error_message
    record.update_timestamp()
    return record


class InMemoryStore(RecordStore):
    """Dict-backed store.

    Every read and write copies the model, so callers never share state with
    the store. A single lock serializes mutations.
    """

    def __init__(self):
        self._records: Dict[str, RawRecord] = {}
        self._users: Dict[str, User] = {}
        self._preferences: Dict[str, UserPreferences] = {}
        self._sessions: Dict[str, ChatSession] = {}
        self._lock = asyncio.Lock()

    async def insert_record(self, record: RawRecord) -> str:
        async with self._lock:
            if record.id in self._records:
                raise StoreError(f"Record already exists: {record.id}")
            self._records[record.id] = record.model_copy(deep=True)
        logger.debug("record_inserted", record_id=record.id, source=record.source.value)
        return record.id

    async def find_record(self, record_id: str) -> Optional[RawRecord]:
        record = self._records.get(record_id)
        return record.model_copy(deep=True) if record else None

    async def find_records(
        self, user_id: str, source: Optional[DataSource] = None
    ) -> List[RawRecord]:
        records = [
            r for r in self._records.values()
            if r.user_id == user_id and (source is None or r.source == source)
        ]
        records.sort(key=lambda r: r.collected_at)
        return [r.model_copy(deep=True) for r in records]

    async def find_pending(self, limit: int = 100) -> List[RawRecord]:
        pending = [r for r in self._records.values() if r.status == ProcessingStatus.PENDING]
        pending.sort(key=lambda r: r.collected_at)
        return [r.model_copy(deep=True) for r in pending[:limit]]

    async def update_status(
        self,
        record_id: str,
        status: ProcessingStatus,
        error_message: Optional[str] = None,
    ) -> bool:
        async with self._lock:
            record = self._records.get(record_id)
            if record is None:
                return False
            apply_status(record, status, error_message)
        return True

    async def update_processed_fields(self, record_id: str, fields: Dict[str, Any]) -> bool:
        async with self._lock:
            record = self._records.get(record_id)
            if record is None:
                return False
            record.processed_fields = dict(fields)
            record.update_timestamp()
        return True

    async def delete_record(self, record_id: str) -> bool:
        async with self._lock:
            return self._records.pop(record_id, None) is not None

    async def get_user(self, user_id: str) -> Optional[User]:
        user = self._users.get(user_id)
        return user.model_copy(deep=True) if user else None

    async def save_user(self, user: User) -> None:
        async with self._lock:
            self._users[user.id] = user.model_copy(deep=True)

    async def get_preferences(self, user_id: str) -> Optional[UserPreferences]:
        preferences = self._preferences.get(user_id)
        return preferences.model_copy(deep=True) if preferences else None

    async def save_preferences(self, user_id: str, preferences: UserPreferences) -> None:
        async with self._lock:
            self._preferences[user_id] = preferences.model_copy(deep=True)

    async def insert_session(self, session: ChatSession) -> None:
        async with self._lock:
            if session.session_id in self._sessions:
                raise StoreError(f"Session already exists: {session.session_id}")
            self._sessions[session.session_id] = session.model_copy(deep=True)

    async def get_session(self, session_id: str) -> Optional[ChatSession]:
        session = self._sessions.get(session_id)
        return session.model_copy(deep=True) if session else None

    async def replace_session(self, session: ChatSession) -> bool:
        async with self._lock:
            if session.session_id not in self._sessions:
                return False
            self._sessions[session.session_id] = session.model_copy(deep=True)
        return True

    async def find_sessions(self, user_id: str, limit: int = 10) -> List[ChatSession]:
        sessions = [s for s in self._sessions.values() if s.user_id == user_id]
        sessions.sort(key=lambda s: s.last_activity_at, reverse=True)
        return [s.model_copy(deep=True) for s in sessions[:limit]]

    async def delete_session(self, session_id: str) -> bool:
        async with self._lock:
            return self._sessions.pop(session_id, None) is not None
