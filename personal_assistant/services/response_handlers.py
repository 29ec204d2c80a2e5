"""Templated answers, one handler per intent.

Handlers that find no data answer with a fixed apology at confidence 0.0
and no sources. The files and calendar handlers read raw records directly
so their answers reflect live data rather than the aggregated profile.
"""

from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional

from personal_assistant.core.config import Settings
from personal_assistant.core.exceptions import ExtractionError
from personal_assistant.core.logging import get_logger
from personal_assistant.database.store import RecordStore
from personal_assistant.models import (
    CalendarPayload,
    ChatResponse,
    DataSource,
    DrivePayload,
    Intent,
    RawRecord,
    RelationshipType,
    UserPreferences,
    utc_now,
)
from personal_assistant.services.extractors import resolve_payload

logger = get_logger(__name__)

NO_INTERESTS = (
    "I don't have enough data to identify your interests yet. Try connecting more "
    "data sources or give me some time to analyze your information."
)
NO_USER = "I don't have information about you yet. Please make sure you're logged in correctly."
NO_RELATIONSHIPS = "I don't have information about your relationships yet. Make sure to sync your contacts."
NO_TASKS = (
    "I don't have any tasks identified for you yet. Try syncing your calendar or give "
    "me more time to analyze your data."
)
NO_HEALTH = (
    "I don't have health information for you yet. Make sure to sync your contacts to "
    "identify doctors and medical contacts."
)
NO_WORK = (
    "I don't have work information for you yet. Try syncing your contacts and calendar "
    "to get work-related insights."
)
NO_FILES = "I don't have information about your files yet. Make sure to connect your Google Drive."
NO_EVENTS = "I don't have upcoming events for you. Make sure to sync your calendar."
GENERAL_ANSWER = (
    "I understand you're asking about something, but I need more specific information. "
    "Try asking about your interests, relationships, tasks, or work. You can also ask "
    "'Who am I?' to get a general overview."
)

SIZE_UNITS = ["B", "KB", "MB", "GB", "TB"]


def format_file_size(size: int) -> str:
    """Human-readable size with up to two decimals, e.g. ``1.5 MB``."""
    value = float(size)
    order = 0
    while value >= 1024 and order < len(SIZE_UNITS) - 1:
        order += 1
        value /= 1024
    number = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{number} {SIZE_UNITS[order]}"


def format_day(value: datetime) -> str:
    return value.strftime("%b %d")


def format_date(value: datetime) -> str:
    return value.strftime("%b %d, %Y")


def format_datetime(value: datetime) -> str:
    return value.strftime("%b %d, %Y %H:%M")


def _answer(
    intent: Intent,
    message: str,
    confidence: float,
    sources: List[str],
    count: int,
) -> ChatResponse:
    return ChatResponse(
        message=message,
        confidence=confidence,
        sources=sources,
        metadata={"intent": intent.value, "count": count},
    )


def _no_data(intent: Intent, message: str) -> ChatResponse:
    return _answer(intent, message, 0.0, [], 0)


Handler = Callable[[str, str, Optional[UserPreferences], datetime], Awaitable[ChatResponse]]


class ResponseHandlers:
    """Answers a classified message from the user's profile and records."""

    def __init__(self, store: RecordStore, settings: Settings):
        self.store = store
        self.config = settings.chat
        self._handlers: Dict[Intent, Handler] = {
            Intent.WHO_AM_I: self.who_am_i,
            Intent.INTERESTS: self.interests,
            Intent.RELATIONSHIPS: self.relationships,
            Intent.TASKS: self.tasks,
            Intent.HEALTH: self.health,
            Intent.WORK: self.work,
            Intent.FILES: self.files,
            Intent.CALENDAR: self.calendar,
            Intent.GENERAL: self.general,
        }

    async def respond(
        self,
        intent: Intent,
        user_id: str,
        text: str,
        preferences: Optional[UserPreferences],
        now: Optional[datetime] = None,
    ) -> ChatResponse:
        """Dispatch to the handler for ``intent``."""
        handler = self._handlers[intent]
        return await handler(user_id, text, preferences, now or utc_now())

    async def who_am_i(self, user_id, text, preferences, now) -> ChatResponse:
        user = await self.store.get_user(user_id)
        if user is None and preferences is None:
            return _no_data(Intent.WHO_AM_I, NO_USER)

        greeting = f"Hello {user.name}!" if user and user.name else "Hello!"
        lines = [f"{greeting} Based on your data, I can see that:", ""]
        count = 0

        if preferences and preferences.interests:
            preview = ", ".join(preferences.interests[:self.config.max_preview_items])
            lines.append(f"• You're interested in: {preview}")
            count += 1
        if preferences and preferences.relationships:
            lines.append(f"• You have {len(preferences.relationships)} contacts in your network")
            count += 1
        if preferences and preferences.tasks:
            lines.append(f"• You have {len(preferences.pending_tasks())} pending tasks")
            count += 1

        return _answer(
            Intent.WHO_AM_I, "\n".join(lines) + "\n", 0.9,
            ["User Profile", "Processed Data"], count,
        )

    async def interests(self, user_id, text, preferences, now) -> ChatResponse:
        if not preferences or not preferences.interests:
            return _no_data(Intent.INTERESTS, NO_INTERESTS)

        shown = preferences.interests[:self.config.max_listed_items]
        lines = ["Based on your data, here are your interests:", ""]
        lines.extend(f"• {interest}" for interest in shown)

        return _answer(
            Intent.INTERESTS, "\n".join(lines) + "\n", 0.8,
            ["Email Analysis", "File Analysis"], len(shown),
        )

    async def relationships(self, user_id, text, preferences, now) -> ChatResponse:
        if not preferences or not preferences.relationships:
            return _no_data(Intent.RELATIONSHIPS, NO_RELATIONSHIPS)

        preview = self.config.max_preview_items
        lines = ["Here are the people in your network:", ""]

        def organization(relationship):
            info = relationship.contact_info
            return info.organization if info and info.organization else ""

        doctors = preferences.relationships_of(RelationshipType.DOCTOR)
        if doctors:
            lines.append("**Doctors:**")
            lines.extend(f"• {d.name} ({organization(d)})" for d in doctors)
            lines.append("")

        colleagues = preferences.relationships_of(RelationshipType.COLLEAGUE)
        if colleagues:
            lines.append("**Colleagues:**")
            lines.extend(f"• {c.name} ({organization(c)})" for c in colleagues[:preview])
            lines.append("")

        family = preferences.relationships_of(RelationshipType.FAMILY)
        if family:
            lines.append("**Family:**")
            lines.extend(f"• {f.name}" for f in family[:preview])
            lines.append("")

        friends = preferences.relationships_of(RelationshipType.FRIEND)
        if friends:
            lines.append("**Friends:**")
            lines.extend(f"• {f.name}" for f in friends[:preview])

        return _answer(
            Intent.RELATIONSHIPS, "\n".join(lines).rstrip("\n") + "\n", 0.9,
            ["Contacts", "Email Analysis"], len(preferences.relationships),
        )

    async def tasks(self, user_id, text, preferences, now) -> ChatResponse:
        if not preferences or not preferences.tasks:
            return _no_data(Intent.TASKS, NO_TASKS)

        pending = preferences.pending_tasks()
        completed = preferences.completed_tasks()
        lines = [
            "**Task Summary:**",
            "",
            f"• Pending: {len(pending)}",
            f"• Completed: {len(completed)}",
            "",
        ]
        if pending:
            lines.append("**Pending Tasks:**")
            for task in pending[:self.config.max_preview_items]:
                due = format_day(task.due_date) if task.due_date else "No due date"
                lines.append(f"• {task.title} (Due: {due})")

        return _answer(
            Intent.TASKS, "\n".join(lines).rstrip("\n") + "\n", 0.9,
            ["Calendar Events", "Email Analysis"], len(preferences.tasks),
        )

    async def health(self, user_id, text, preferences, now) -> ChatResponse:
        if not preferences or preferences.health_info is None:
            return _no_data(Intent.HEALTH, NO_HEALTH)

        health = preferences.health_info
        lines = ["**Health Information:**", ""]

        if health.doctors:
            lines.append("**Your Doctors:**")
            for doctor in health.doctors:
                specialty = f" - {doctor.specialty}" if doctor.specialty else ""
                lines.append(f"• Dr. {doctor.name}{specialty}")
                if doctor.last_visit:
                    lines.append(f"  Last visit: {format_date(doctor.last_visit)}")
            lines.append("")

        if health.medications:
            lines.append("**Medications:**")
            lines.extend(f"• {m}" for m in health.medications)
            lines.append("")

        if health.allergies:
            lines.append("**Allergies:**")
            lines.extend(f"• {a}" for a in health.allergies)

        return _answer(
            Intent.HEALTH, "\n".join(lines).rstrip("\n") + "\n", 0.9,
            ["Contacts", "Calendar Events"], len(health.doctors),
        )

    async def work(self, user_id, text, preferences, now) -> ChatResponse:
        if not preferences or preferences.work_info is None:
            return _no_data(Intent.WORK, NO_WORK)

        work = preferences.work_info
        lines = ["**Work Information:**", ""]
        if work.company:
            lines.append(f"**Company:** {work.company}")
        if work.position:
            lines.append(f"**Position:** {work.position}")

        if work.colleagues:
            lines.append("")
            lines.append(f"**Colleagues ({len(work.colleagues)}):**")
            lines.extend(f"• {c.name}" for c in work.colleagues[:self.config.max_preview_items])

        if work.projects:
            lines.append("")
            lines.append("**Projects:**")
            lines.extend(f"• {p}" for p in work.projects)

        return _answer(
            Intent.WORK, "\n".join(lines).rstrip("\n") + "\n", 0.8,
            ["Contacts", "Calendar Events", "Email Analysis"], len(work.colleagues),
        )

    async def files(self, user_id, text, preferences, now) -> ChatResponse:
        records = await self.store.find_records(user_id, DataSource.GOOGLE_DRIVE)
        files: List[DrivePayload] = self._payloads(records)
        if not files:
            return _no_data(Intent.FILES, NO_FILES)

        # Files without a modification time sort last
        files.sort(
            key=lambda f: (f.last_modified is not None, f.last_modified or now),
            reverse=True,
        )
        shown = files[:self.config.max_listed_items]

        lines = ["**Recent Files:**", ""]
        for f in shown:
            modified = format_date(f.last_modified) if f.last_modified else "unknown date"
            lines.append(
                f"• {f.file_name} ({f.file_type}) - {modified} ({format_file_size(f.file_size)})"
            )

        return _answer(Intent.FILES, "\n".join(lines) + "\n", 0.9, ["Google Drive"], len(shown))

    async def calendar(self, user_id, text, preferences, now) -> ChatResponse:
        records = await self.store.find_records(user_id, DataSource.IOS_CALENDAR)
        events: List[CalendarPayload] = [
            e for e in self._payloads(records) if e.start_time > now
        ]
        if not events:
            return _no_data(Intent.CALENDAR, NO_EVENTS)

        events.sort(key=lambda e: e.start_time)
        shown = events[:self.config.max_listed_items]

        lines = ["**Upcoming Events:**", ""]
        for event in shown:
            location = f" at {event.location}" if event.location else ""
            lines.append(f"• {event.title} - {format_datetime(event.start_time)}{location}")

        return _answer(Intent.CALENDAR, "\n".join(lines) + "\n", 0.9, ["Calendar"], len(shown))

    async def general(self, user_id, text, preferences, now) -> ChatResponse:
        return _answer(Intent.GENERAL, GENERAL_ANSWER, 0.3, ["General Knowledge"], 0)

    def _payloads(self, records: List[RawRecord]) -> list:
        payloads = []
        for record in records:
            try:
                payloads.append(resolve_payload(record))
            except ExtractionError as e:
                logger.warning("record_skipped_in_answer", record_id=record.id, error=str(e))
        return payloads
