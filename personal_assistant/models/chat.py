"""Models for chat sessions and responses."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel as PydanticBaseModel
from pydantic import Field, field_validator

from personal_assistant.models.base import BaseModel, ensure_utc, utc_now


class MessageRole(str, Enum):
    """Author of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Intent(str, Enum):
    """Fixed set of intents a user message can be classified into."""

    WHO_AM_I = "who_am_i"
    INTERESTS = "interests"
    RELATIONSHIPS = "relationships"
    TASKS = "tasks"
    HEALTH = "health"
    WORK = "work"
    FILES = "files"
    CALENDAR = "calendar"
    GENERAL = "general"


class ChatMessage(BaseModel):
    """One message in a chat session."""

    content: str = Field(..., description="Message text")
    role: MessageRole = Field(..., description="Message author")
    timestamp: datetime = Field(default_factory=utc_now, description="Message time")
    sources: List[str] = Field(default_factory=list, description="Source labels cited")

    @field_validator("timestamp", mode="after")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class ChatSession(BaseModel):
    """A conversation with its ordered message history."""

    user_id: str = Field(..., description="Session owner")
    session_id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Public session identifier"
    )
    messages: List[ChatMessage] = Field(default_factory=list, description="Ordered history")
    last_activity_at: datetime = Field(default_factory=utc_now, description="Last activity")
    is_active: bool = Field(True, description="False once the session is deleted")
    context: Dict[str, Any] = Field(default_factory=dict, description="Conversation state")

    @field_validator("last_activity_at", mode="after")
    @classmethod
    def normalize_last_activity(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    def add_message(
        self,
        role: MessageRole,
        content: str,
        sources: Optional[List[str]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        timestamp: Optional[datetime] = None,
    ) -> ChatMessage:
        """Append a message and bump ``last_activity_at``.

        A message never gets an earlier timestamp than the one before it.
        """
        timestamp = ensure_utc(timestamp) or utc_now()
        if self.messages and timestamp < self.messages[-1].timestamp:
            timestamp = self.messages[-1].timestamp

        message = ChatMessage(
            content=content,
            role=role,
            timestamp=timestamp,
            sources=list(sources or []),
            metadata=dict(metadata or {}),
        )
        self.messages.append(message)
        self.last_activity_at = max(self.last_activity_at, timestamp)
        return message

    def deactivate(self) -> None:
        """Soft-delete the session."""
        self.is_active = False
        self.update_timestamp()


class ChatResponse(PydanticBaseModel):
    """Answer to one user message; not persisted on its own."""

    message: str = Field(..., description="Assistant reply")
    session_id: str = Field("", description="Session the reply belongs to")
    sources: List[str] = Field(default_factory=list, description="Source labels cited")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Response metadata")
    timestamp: datetime = Field(default_factory=utc_now, description="Response time")
    confidence: float = Field(0.0, ge=0.0, le=1.0, description="Confidence score")
