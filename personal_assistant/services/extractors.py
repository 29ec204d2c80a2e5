"""Per-source extraction of raw records into processed field maps.

Extraction never mutates the record. Malformed payloads raise
``ExtractionError``; the caller decides what happens to the record.
"""

import json
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from personal_assistant.core.config import ProcessingConfig
from personal_assistant.core.exceptions import ExtractionError
from personal_assistant.models import (
    PAYLOAD_TYPES,
    CalendarPayload,
    ContactPayload,
    DataSource,
    DrivePayload,
    GmailPayload,
    RawRecord,
    RecordPayload,
)
from personal_assistant.services.classifiers import (
    categorize_event,
    categorize_file,
    classify_relationship,
    extract_keywords,
)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def resolve_payload(record: RawRecord) -> RecordPayload:
    """Typed payload of a record.

    Uses the attached variant when present and parses ``raw_payload``
    otherwise.

    Raises:
        ExtractionError: payload missing, not a JSON object, of the wrong
            shape, or belonging to another source
    """
    if record.payload is not None:
        if record.payload.source != record.source:
            raise ExtractionError(
                f"Payload source {record.payload.source.value} does not match "
                f"record source {record.source.value}",
                record_id=record.id,
            )
        return record.payload

    if not record.raw_payload:
        raise ExtractionError("Record has no payload", record_id=record.id)

    try:
        data = json.loads(record.raw_payload)
    except RecursionError as e:
        raise ExtractionError("Payload is nested too deeply", record_id=record.id) from e
    except ValueError as e:
        raise ExtractionError(f"Payload is not valid JSON: {e}", record_id=record.id) from e

    if not isinstance(data, dict):
        raise ExtractionError(
            f"Payload must be a JSON object, got {type(data).__name__}",
            record_id=record.id,
        )

    # The record's source is authoritative for which variant to parse
    data["source"] = record.source
    payload_type = PAYLOAD_TYPES[record.source]
    try:
        return payload_type.model_validate(data)
    except ValidationError as e:
        raise ExtractionError(
            f"Invalid {record.source.value} payload: {e.error_count()} validation error(s); "
            f"first: {e.errors()[0]['msg']}",
            record_id=record.id,
        ) from e


def extract_gmail(payload: GmailPayload, config: ProcessingConfig) -> Dict[str, Any]:
    """Email metadata plus subject keywords."""
    return {
        "subject": payload.subject,
        "sender": payload.sender,
        "sent_at": _isoformat(payload.sent_at),
        "labels": list(payload.labels),
        "keywords": extract_keywords(
            payload.subject,
            limit=config.keyword_limit,
            min_length=config.min_keyword_length,
        ),
    }


def extract_drive(payload: DrivePayload, config: ProcessingConfig) -> Dict[str, Any]:
    """File listing fields plus a category from the MIME type."""
    return {
        "file_name": payload.file_name,
        "file_type": payload.file_type,
        "file_size": payload.file_size,
        "last_modified": _isoformat(payload.last_modified),
        "category": categorize_file(payload.file_type).value,
    }


def extract_contact(payload: ContactPayload, config: ProcessingConfig) -> Dict[str, Any]:
    """Contact fields plus the inferred relationship type."""
    return {
        "name": payload.full_name,
        "first_name": payload.first_name,
        "last_name": payload.last_name,
        "emails": list(payload.emails),
        "phones": list(payload.phones),
        "organization": payload.organization,
        "job_title": payload.job_title,
        "relationship_type": classify_relationship(
            payload.full_name, payload.organization
        ).value,
    }


def extract_calendar(payload: CalendarPayload, config: ProcessingConfig) -> Dict[str, Any]:
    """Event fields plus a category from its title and description."""
    return {
        "title": payload.title,
        "description": payload.description,
        "start_time": _isoformat(payload.start_time),
        "end_time": _isoformat(payload.end_time),
        "location": payload.location,
        "attendees": list(payload.attendees),
        "is_all_day": payload.is_all_day,
        "event_type": categorize_event(payload.title, payload.description).value,
    }


EXTRACTORS: Dict[DataSource, Callable[[Any, ProcessingConfig], Dict[str, Any]]] = {
    DataSource.GMAIL: extract_gmail,
    DataSource.GOOGLE_DRIVE: extract_drive,
    DataSource.IOS_CONTACTS: extract_contact,
    DataSource.IOS_CALENDAR: extract_calendar,
}


def extract(record: RawRecord, config: ProcessingConfig) -> Dict[str, Any]:
    """Turn a raw record into its processed field map.

    Args:
        record: Record to extract; left untouched
        config: Extraction settings

    Returns:
        JSON-compatible field map for the record's source

    Raises:
        ExtractionError: the payload is malformed
    """
    payload = resolve_payload(record)
    return EXTRACTORS[record.source](payload, config)
