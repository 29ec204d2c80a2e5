"""Raw records collected from external sources.

A raw record is one ingested item (an email, a drive file, a contact, a
calendar event). It always carries the opaque serialized payload it was
collected with and may carry a typed payload variant; the variants form a
tagged union discriminated by ``source``.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices
from pydantic import BaseModel as PydanticBaseModel
from pydantic import Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from personal_assistant.models.base import (
    BaseModel,
    DataSource,
    ProcessingStatus,
    ensure_utc,
    utc_now,
)

DEFAULT_DATA_TYPES = {
    DataSource.GMAIL: "email",
    DataSource.GOOGLE_DRIVE: "file",
    DataSource.IOS_CONTACTS: "contact",
    DataSource.IOS_CALENDAR: "calendar_event",
}


class PayloadModel(PydanticBaseModel):
    """Base for source payloads; accepts snake_case or camelCase keys."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "ignore",
    }


class GmailPayload(PayloadModel):
    """Email metadata."""

    source: Literal[DataSource.GMAIL] = DataSource.GMAIL
    subject: str = ""
    sender: str = ""
    recipients: List[str] = Field(default_factory=list)
    sent_at: Optional[datetime] = None
    thread_id: str = ""
    labels: List[str] = Field(default_factory=list)

    @field_validator("sent_at", mode="after")
    @classmethod
    def normalize_sent_at(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class DrivePayload(PayloadModel):
    """Cloud drive file listing entry.

    Also accepts the Drive API field names (``name``, ``mimeType``, ``size``,
    ``modifiedTime``).
    """

    source: Literal[DataSource.GOOGLE_DRIVE] = DataSource.GOOGLE_DRIVE
    file_name: str = Field(
        "", validation_alias=AliasChoices("file_name", "fileName", "name")
    )
    file_type: str = Field(
        "", validation_alias=AliasChoices("file_type", "fileType", "mimeType")
    )
    file_size: int = Field(
        0, ge=0, validation_alias=AliasChoices("file_size", "fileSize", "size")
    )
    folder_path: str = ""
    last_modified: Optional[datetime] = Field(
        None,
        validation_alias=AliasChoices("last_modified", "lastModified", "modifiedTime"),
    )
    shared_with: List[str] = Field(default_factory=list)

    @field_validator("last_modified", mode="after")
    @classmethod
    def normalize_last_modified(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class ContactPayload(PayloadModel):
    """Device address book entry."""

    source: Literal[DataSource.IOS_CONTACTS] = DataSource.IOS_CONTACTS
    first_name: str = ""
    last_name: str = ""
    emails: List[str] = Field(default_factory=list)
    phones: List[str] = Field(default_factory=list)
    organization: Optional[str] = None
    job_title: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class CalendarPayload(PayloadModel):
    """Device calendar event."""

    source: Literal[DataSource.IOS_CALENDAR] = DataSource.IOS_CALENDAR
    title: str = ""
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    location: Optional[str] = None
    attendees: List[str] = Field(default_factory=list)
    is_all_day: bool = False

    @field_validator("start_time", "end_time", mode="after")
    @classmethod
    def normalize_times(cls, v: datetime) -> datetime:
        return ensure_utc(v)


RecordPayload = Annotated[
    Union[GmailPayload, DrivePayload, ContactPayload, CalendarPayload],
    Field(discriminator="source"),
]

PAYLOAD_TYPES = {
    DataSource.GMAIL: GmailPayload,
    DataSource.GOOGLE_DRIVE: DrivePayload,
    DataSource.IOS_CONTACTS: ContactPayload,
    DataSource.IOS_CALENDAR: CalendarPayload,
}


class RawRecord(BaseModel):
    """One ingested item, before and after extraction."""

    user_id: str = Field(..., description="Owner of the record")
    source: DataSource = Field(..., description="Source the record was collected from")
    data_type: str = Field(
        "",
        validate_default=True,
        description="Item kind (email, file, contact, calendar_event)"
    )

    raw_payload: str = Field("", description="Opaque serialized payload as collected")
    payload: Optional[RecordPayload] = Field(None, description="Typed payload variant")

    processed_fields: Dict[str, Any] = Field(
        default_factory=dict,
        description="Fields produced by extraction"
    )
    status: ProcessingStatus = Field(ProcessingStatus.PENDING, description="Processing status")

    collected_at: datetime = Field(default_factory=utc_now, description="Collection time")
    processed_at: Optional[datetime] = Field(None, description="Extraction time")
    error_message: Optional[str] = Field(None, description="Extraction failure reason")

    @field_validator("data_type", mode="after")
    @classmethod
    def default_data_type(cls, v: str, info: ValidationInfo) -> str:
        """Derive the item kind from the source when not given."""
        if v:
            return v
        source = info.data.get("source")
        return DEFAULT_DATA_TYPES.get(source, "") if source else ""

    @field_validator("collected_at", "processed_at", mode="after")
    @classmethod
    def normalize_record_times(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    def is_pending(self) -> bool:
        """Check if the record still awaits extraction."""
        return self.status == ProcessingStatus.PENDING

    def mark_completed(self, fields: Dict[str, Any], at: Optional[datetime] = None) -> None:
        """Record a successful extraction."""
        self.processed_fields = dict(fields)
        self.status = ProcessingStatus.COMPLETED
        self.processed_at = at or utc_now()
        self.error_message = None
        self.update_timestamp()

    def mark_failed(self, error_message: str, at: Optional[datetime] = None) -> None:
        """Record a failed extraction."""
        self.status = ProcessingStatus.FAILED
        self.error_message = error_message
        self.processed_at = at or utc_now()
        self.update_timestamp()
