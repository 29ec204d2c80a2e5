"""Models for the aggregated preference profile and its derived insights."""

from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel as PydanticBaseModel
from pydantic import Field, field_validator

from personal_assistant.models.base import BaseModel, DataSource, ensure_utc, utc_now


class RelationshipType(str, Enum):
    """How a contact relates to the user."""

    DOCTOR = "Doctor"
    COLLEAGUE = "Colleague"
    FAMILY = "Family"
    FRIEND = "Friend"


class FileCategory(str, Enum):
    """Coarse category of a drive file, derived from its MIME type."""

    IMAGE = "Image"
    VIDEO = "Video"
    AUDIO = "Audio"
    DOCUMENT = "Document"
    SPREADSHEET = "Spreadsheet"
    PRESENTATION = "Presentation"
    OTHER = "Other"


class EventCategory(str, Enum):
    """Coarse category of a calendar event, derived from its text."""

    WORK = "Work"
    HEALTH = "Health"
    PERSONAL = "Personal"
    TRAVEL = "Travel"
    OTHER = "Other"


class ContactInfo(PydanticBaseModel):
    """Ways to reach a person."""

    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    organization: Optional[str] = None


class Relationship(PydanticBaseModel):
    """A person in the user's network."""

    name: str = Field(..., description="Display name")
    type: RelationshipType = Field(..., description="Relationship type")
    contact_info: Optional[ContactInfo] = Field(None, description="Contact details")
    source: DataSource = Field(DataSource.IOS_CONTACTS, description="Where it was inferred from")
    confidence: float = Field(0.0, ge=0.0, le=1.0, description="Inference confidence")


class TaskItem(PydanticBaseModel):
    """A task derived from a calendar event."""

    title: str = Field(..., description="Task title")
    description: Optional[str] = Field(None, description="Task description")
    due_date: Optional[datetime] = Field(None, description="Due date (event start)")
    priority: str = Field("Medium", description="Task priority")
    is_completed: bool = Field(False, description="Event already ended at aggregation time")
    source: DataSource = Field(DataSource.IOS_CALENDAR, description="Where it was inferred from")

    @field_validator("due_date", mode="after")
    @classmethod
    def normalize_due_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class Doctor(PydanticBaseModel):
    """A medical contact."""

    name: str
    specialty: str = ""
    contact_info: Optional[ContactInfo] = None
    last_visit: Optional[datetime] = None


class HealthInfo(PydanticBaseModel):
    """Health facts about the user."""

    doctors: List[Doctor] = Field(default_factory=list)
    medications: List[str] = Field(default_factory=list)
    allergies: List[str] = Field(default_factory=list)


class WorkInfo(PydanticBaseModel):
    """Work facts about the user."""

    company: Optional[str] = None
    position: Optional[str] = None
    colleagues: List[Relationship] = Field(default_factory=list)
    projects: List[str] = Field(default_factory=list)


class UserPreferences(PydanticBaseModel):
    """Aggregated preference profile of one user.

    Always rebuilt as a whole from the user's raw records and stored by full
    replacement, never merged field by field.
    """

    interests: List[str] = Field(default_factory=list, description="Interests in first-seen order")
    relationships: List[Relationship] = Field(default_factory=list, description="People in the user's network")
    tasks: List[TaskItem] = Field(default_factory=list, description="Tasks derived from events")
    health_info: Optional[HealthInfo] = Field(None, description="Health facts")
    work_info: Optional[WorkInfo] = Field(None, description="Work facts")
    last_updated: datetime = Field(default_factory=utc_now, description="Aggregation time")

    @field_validator("interests", mode="after")
    @classmethod
    def dedupe_interests(cls, v: List[str]) -> List[str]:
        """Drop duplicates while keeping first-seen order."""
        return list(dict.fromkeys(item for item in v if item))

    @field_validator("last_updated", mode="after")
    @classmethod
    def normalize_last_updated(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    def pending_tasks(self) -> List[TaskItem]:
        """Tasks whose event has not ended yet."""
        return [t for t in self.tasks if not t.is_completed]

    def completed_tasks(self) -> List[TaskItem]:
        """Tasks whose event already ended."""
        return [t for t in self.tasks if t.is_completed]

    def relationships_of(self, relationship_type: RelationshipType) -> List[Relationship]:
        """Relationships of one type, in profile order."""
        return [r for r in self.relationships if r.type == relationship_type]

    def content_equals(self, other: "UserPreferences") -> bool:
        """Compare two snapshots ignoring ``last_updated``."""
        exclude = {"last_updated"}
        return self.model_dump(exclude=exclude) == other.model_dump(exclude=exclude)


class Insight(PydanticBaseModel):
    """A human-readable summary derived from a preference snapshot."""

    type: str = Field(..., description="Insight category")
    description: str = Field(..., description="Human-readable summary")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Confidence score")
    data: Dict[str, Any] = Field(default_factory=dict, description="Supporting data")
    generated_at: datetime = Field(default_factory=utc_now, description="Generation time")


class ProcessingResult(PydanticBaseModel):
    """Outcome of processing a batch of raw records."""

    success: bool = False
    processed_count: int = 0
    failed_count: int = 0
    errors: List[str] = Field(default_factory=list)
    processing_time: timedelta = timedelta(0)


class User(BaseModel):
    """A user as resolved by the identity collaborator."""

    name: str = Field("", description="Display name")
    email: Optional[str] = Field(None, description="Primary email")
    is_active: bool = Field(True, description="Account active flag")
