"""Base models and enums shared by every entity."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel as PydanticBaseModel
from pydantic import Field, field_validator
from ulid import ULID


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Interpret naive datetimes as UTC and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def new_id() -> str:
    """Generate a time-ordered identifier (ULID)."""
    return str(ULID())


class DataSource(str, Enum):
    """External data sources a raw record can come from."""

    GMAIL = "gmail"
    GOOGLE_DRIVE = "google_drive"
    IOS_CONTACTS = "ios_contacts"
    IOS_CALENDAR = "ios_calendar"


class ProcessingStatus(str, Enum):
    """Lifecycle of a raw record through extraction."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class BaseModel(PydanticBaseModel):
    """Base model with common fields and configuration."""

    id: str = Field(default_factory=new_id, description="Unique identifier")
    created_at: datetime = Field(default_factory=utc_now, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=utc_now, description="Last update timestamp")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Additional metadata")

    model_config = {
        "populate_by_name": True,
        "validate_assignment": True,
    }

    @field_validator("created_at", "updated_at", mode="after")
    @classmethod
    def normalize_timestamps(cls, v: datetime) -> datetime:
        """Store timestamps as aware UTC datetimes."""
        return ensure_utc(v)

    def update_timestamp(self) -> None:
        """Update the updated_at timestamp."""
        self.updated_at = utc_now()

    def add_metadata(self, key: str, value: Any) -> None:
        """Add or update metadata key-value pair."""
        self.metadata[key] = value
        self.update_timestamp()

    def get_metadata(self, key: str, default: Any = None) -> Any:
        """Get metadata value by key."""
        return self.metadata.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to a JSON-compatible dictionary."""
        return self.model_dump(mode="json")

    def to_json(self) -> str:
        """Convert model to JSON string."""
        return self.model_dump_json()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BaseModel":
        """Create model from dictionary."""
        return cls.model_validate(data)

    @classmethod
    def from_json(cls, json_str: str) -> "BaseModel":
        """Create model from JSON string."""
        return cls.model_validate_json(json_str)
