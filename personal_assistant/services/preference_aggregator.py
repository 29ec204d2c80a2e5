"""Full, non-incremental rebuild of a user's preference profile."""

from collections import Counter
from datetime import datetime
from typing import Iterable, List, Optional

from personal_assistant.core.config import Settings
from personal_assistant.core.exceptions import AggregationError, StoreError
from personal_assistant.core.logging import get_logger
from personal_assistant.database.store import RecordStore
from personal_assistant.models import (
    CalendarPayload,
    ContactInfo,
    ContactPayload,
    DataSource,
    Doctor,
    EventCategory,
    GmailPayload,
    HealthInfo,
    RawRecord,
    Relationship,
    RelationshipType,
    TaskItem,
    UserPreferences,
    WorkInfo,
    utc_now,
)
from personal_assistant.services.classifiers import (
    categorize_event,
    classify_relationship,
    extract_keywords,
)
from personal_assistant.services.extractors import resolve_payload

logger = get_logger(__name__)


class PreferenceAggregator:
    """Builds ``UserPreferences`` from every raw record a user owns.

    Each rebuild starts from scratch and replaces the stored profile as a
    whole, so running it twice over the same records gives the same
    profile apart from ``last_updated``. Rebuilds for the same user are not
    serialized; the last write wins.
    """

    def __init__(self, store: RecordStore, settings: Settings):
        self.store = store
        self.config = settings.processing

    async def rebuild(self, user_id: str, now: Optional[datetime] = None) -> UserPreferences:
        """Rebuild and store a user's preferences.

        Raises:
            AggregationError: the store could not be read or written; the
                previously stored profile is left as it was
        """
        now = now or utc_now()

        try:
            records = await self.store.find_records(user_id)
        except StoreError as e:
            raise AggregationError(f"Could not load records: {e}", user_id=user_id) from e

        preferences = self.build(records, now)

        try:
            await self.store.save_preferences(user_id, preferences)
        except StoreError as e:
            raise AggregationError(f"Could not save preferences: {e}", user_id=user_id) from e

        logger.info(
            "preferences_rebuilt",
            user_id=user_id,
            record_count=len(records),
            interests=len(preferences.interests),
            relationships=len(preferences.relationships),
            tasks=len(preferences.tasks),
        )
        return preferences

    def build(self, records: Iterable[RawRecord], now: datetime) -> UserPreferences:
        """Aggregate records into a fresh profile without touching the store."""
        interests: List[str] = []
        relationships: List[Relationship] = []
        tasks: List[TaskItem] = []
        health_events: List[CalendarPayload] = []
        work_events: List[CalendarPayload] = []
        contacts: List[ContactPayload] = []

        for record in records:
            try:
                payload = resolve_payload(record)
            except Exception as e:
                logger.warning(
                    "record_skipped_in_aggregation",
                    record_id=record.id,
                    source=record.source.value,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                continue

            if isinstance(payload, GmailPayload):
                interests.extend(
                    extract_keywords(
                        payload.subject,
                        limit=self.config.keyword_limit,
                        min_length=self.config.min_keyword_length,
                    )
                )
            elif isinstance(payload, ContactPayload):
                contacts.append(payload)
                relationships.append(self._relationship(payload))
            elif isinstance(payload, CalendarPayload):
                tasks.append(
                    TaskItem(
                        title=payload.title,
                        description=payload.description,
                        due_date=payload.start_time,
                        is_completed=payload.end_time < now,
                    )
                )
                category = categorize_event(payload.title, payload.description)
                if category == EventCategory.HEALTH:
                    health_events.append(payload)
                elif category == EventCategory.WORK:
                    work_events.append(payload)
            # Drive files are categorized during extraction but do not feed the profile

        health_info = None
        work_info = None
        if self.config.derive_health_and_work:
            health_info = self._health_info(contacts, relationships, health_events, now)
            work_info = self._work_info(relationships, work_events, now)

        return UserPreferences(
            interests=interests,
            relationships=relationships,
            tasks=tasks,
            health_info=health_info,
            work_info=work_info,
            last_updated=now,
        )

    def _relationship(self, contact: ContactPayload) -> Relationship:
        return Relationship(
            name=contact.full_name,
            type=classify_relationship(contact.full_name, contact.organization),
            contact_info=ContactInfo(
                email=contact.emails[0] if contact.emails else None,
                phone=contact.phones[0] if contact.phones else None,
                organization=contact.organization,
            ),
            source=DataSource.IOS_CONTACTS,
            confidence=self.config.relationship_confidence,
        )

    def _health_info(
        self,
        contacts: List[ContactPayload],
        relationships: List[Relationship],
        health_events: List[CalendarPayload],
        now: datetime,
    ) -> Optional[HealthInfo]:
        # contacts and relationships are parallel lists
        doctors = [
            (contact, relationship)
            for contact, relationship in zip(contacts, relationships)
            if relationship.type == RelationshipType.DOCTOR
        ]
        if not doctors:
            return None

        return HealthInfo(
            doctors=[
                Doctor(
                    name=relationship.name,
                    specialty=contact.job_title or "",
                    contact_info=relationship.contact_info,
                    last_visit=_last_visit(contact, health_events, now),
                )
                for contact, relationship in doctors
            ]
        )

    def _work_info(
        self,
        relationships: List[Relationship],
        work_events: List[CalendarPayload],
        now: datetime,
    ) -> Optional[WorkInfo]:
        colleagues = [r for r in relationships if r.type == RelationshipType.COLLEAGUE]
        if not colleagues:
            return None

        organizations = [
            r.contact_info.organization
            for r in colleagues
            if r.contact_info and r.contact_info.organization
        ]
        # most_common keeps first-seen order among equal counts
        company = Counter(organizations).most_common(1)[0][0] if organizations else None

        projects = list(dict.fromkeys(
            e.title for e in work_events if e.start_time > now and e.title
        ))

        return WorkInfo(company=company, colleagues=colleagues, projects=projects)


def _mentions(event: CalendarPayload, contact: ContactPayload) -> bool:
    """Whether a calendar event names the contact or lists them as attendee."""
    names = [n.casefold() for n in (contact.full_name, contact.last_name) if n]
    emails = {e.casefold() for e in contact.emails}

    text = " ".join(filter(None, (event.title, event.description, event.location))).casefold()
    if any(name in text for name in names):
        return True
    for attendee in event.attendees:
        attendee = attendee.casefold()
        if attendee in emails or any(name in attendee for name in names):
            return True
    return False


def _last_visit(
    contact: ContactPayload, health_events: List[CalendarPayload], now: datetime
) -> Optional[datetime]:
    """End of the latest already-ended health event involving the contact."""
    visits = [
        e.end_time for e in health_events
        if e.end_time < now and _mentions(e, contact)
    ]
    return max(visits) if visits else None
