"""Data models for the personal assistant.

This module provides Pydantic models for:
- Raw records and their typed source payloads
- The aggregated preference profile and insights
- Chat sessions, messages and responses
"""

from personal_assistant.models.base import (
    BaseModel,
    DataSource,
    ProcessingStatus,
    ensure_utc,
    new_id,
    utc_now,
)
from personal_assistant.models.chat import (
    ChatMessage,
    ChatResponse,
    ChatSession,
    Intent,
    MessageRole,
)
from personal_assistant.models.preferences import (
    ContactInfo,
    Doctor,
    EventCategory,
    FileCategory,
    HealthInfo,
    Insight,
    ProcessingResult,
    Relationship,
    RelationshipType,
    TaskItem,
    User,
    UserPreferences,
    WorkInfo,
)
from personal_assistant.models.records import (
    CalendarPayload,
    ContactPayload,
    DrivePayload,
    GmailPayload,
    PAYLOAD_TYPES,
    RawRecord,
    RecordPayload,
)

__all__ = [
    # Base
    "BaseModel",
    "DataSource",
    "ProcessingStatus",
    "ensure_utc",
    "new_id",
    "utc_now",
    # Records
    "RawRecord",
    "RecordPayload",
    "GmailPayload",
    "DrivePayload",
    "ContactPayload",
    "CalendarPayload",
    "PAYLOAD_TYPES",
    # Preferences
    "UserPreferences",
    "Relationship",
    "RelationshipType",
    "ContactInfo",
    "TaskItem",
    "HealthInfo",
    "Doctor",
    "WorkInfo",
    "FileCategory",
    "EventCategory",
    "Insight",
    "ProcessingResult",
    "User",
    # Chat
    "ChatSession",
    "ChatMessage",
    "ChatResponse",
    "MessageRole",
    "Intent",
]
