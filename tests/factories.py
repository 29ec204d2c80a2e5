"""Raw record builders shared by the test suites."""

import json
from datetime import datetime, timedelta

from personal_assistant.models import DataSource, RawRecord

USER_ID = "user-1"

# Valid JSON nested deeper than the parser recursion limit
DEEPLY_NESTED_JSON = "[" * 100000 + "]" * 100000


def make_record(source: DataSource, payload, user_id: str = USER_ID, **kwargs) -> RawRecord:
    """Raw record carrying ``payload`` serialized as JSON (or a raw string)."""
    raw = payload if isinstance(payload, str) else json.dumps(payload)
    return RawRecord(user_id=user_id, source=source, raw_payload=raw, **kwargs)


def email(subject: str, **kwargs) -> RawRecord:
    return make_record(
        DataSource.GMAIL,
        {"subject": subject, "sender": "alice@example.com", "labels": ["INBOX"]},
        **kwargs,
    )


def contact(
    first_name: str,
    last_name: str = "",
    organization: str = "",
    job_title: str = "",
    **kwargs,
) -> RawRecord:
    payload = {
        "firstName": first_name,
        "lastName": last_name,
        "organization": organization,
        "jobTitle": job_title,
        "emails": [f"{first_name.lower()}@example.com"],
        "phones": ["+1 555 0100"],
    }
    return make_record(DataSource.IOS_CONTACTS, payload, **kwargs)


def event(
    title: str,
    start: datetime,
    hours: int = 1,
    description: str = "",
    location: str = None,
    **kwargs,
) -> RawRecord:
    payload = {
        "title": title,
        "description": description,
        "startTime": start.isoformat(),
        "endTime": (start + timedelta(hours=hours)).isoformat(),
        "location": location,
    }
    return make_record(DataSource.IOS_CALENDAR, payload, **kwargs)


def drive_file(name: str, mime_type: str, size: int, modified: datetime, **kwargs) -> RawRecord:
    payload = {
        "name": name,
        "mimeType": mime_type,
        "size": size,
        "modifiedTime": modified.isoformat(),
    }
    return make_record(DataSource.GOOGLE_DRIVE, payload, **kwargs)
