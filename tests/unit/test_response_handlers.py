"""Tests for the per-intent response handlers."""

from datetime import datetime, timedelta, timezone

import pytest

from personal_assistant.models import (
    ContactInfo,
    DataSource,
    Doctor,
    HealthInfo,
    Intent,
    Relationship,
    RelationshipType,
    TaskItem,
    User,
    UserPreferences,
    WorkInfo,
)
from personal_assistant.services.response_handlers import ResponseHandlers, format_file_size
from tests.factories import USER_ID, drive_file, event, make_record


@pytest.fixture
def handlers(store, settings):
    return ResponseHandlers(store, settings)


@pytest.fixture
def profile(now):
    """A profile with data in every section."""
    return UserPreferences(
        interests=["golf", "jazz", "chess"],
        relationships=[
            Relationship(
                name="Grace Kim",
                type=RelationshipType.DOCTOR,
                contact_info=ContactInfo(organization="St. Mary Hospital"),
            ),
            Relationship(
                name="Ben Ray",
                type=RelationshipType.COLLEAGUE,
                contact_info=ContactInfo(organization="Acme Corp"),
            ),
            Relationship(name="Bob", type=RelationshipType.FRIEND),
        ],
        tasks=[
            TaskItem(title="Dentist", due_date=now + timedelta(days=3)),
            TaskItem(title="Old call", is_completed=True),
        ],
        health_info=HealthInfo(doctors=[
            Doctor(name="Grace Kim", specialty="Cardiologist", last_visit=datetime(2024, 5, 20, tzinfo=timezone.utc)),
        ]),
        work_info=WorkInfo(
            company="Acme Corp",
            colleagues=[Relationship(name="Ben Ray", type=RelationshipType.COLLEAGUE)],
            projects=["Launch meeting"],
        ),
    )


class TestNoData:
    """Handlers without data answer with a zero-confidence apology."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("intent", [
        Intent.WHO_AM_I,
        Intent.INTERESTS,
        Intent.RELATIONSHIPS,
        Intent.TASKS,
        Intent.HEALTH,
        Intent.WORK,
        Intent.FILES,
        Intent.CALENDAR,
    ])
    async def test_apology(self, handlers, intent, now):
        """No profile and no records give confidence 0.0 and no sources."""
        response = await handlers.respond(intent, USER_ID, "question", None, now)

        assert response.confidence == 0.0
        assert response.sources == []
        assert response.metadata == {"intent": intent.value, "count": 0}
        assert response.message.startswith("I don't have")


class TestProfileHandlers:
    """Handlers answering from the aggregated profile."""

    @pytest.mark.asyncio
    async def test_who_am_i_with_user(self, handlers, store, profile, now):
        """Known users are greeted by name with a profile summary."""
        user = User(id=USER_ID, name="Alex")
        await store.save_user(user)

        response = await handlers.respond(Intent.WHO_AM_I, USER_ID, "Who am I?", profile, now)

        assert response.message.startswith("Hello Alex! Based on your data")
        assert "• You're interested in: golf, jazz, chess" in response.message
        assert "• You have 3 contacts in your network" in response.message
        assert "• You have 1 pending tasks" in response.message
        assert response.confidence == 0.9
        assert response.sources == ["User Profile", "Processed Data"]

    @pytest.mark.asyncio
    async def test_who_am_i_without_user_record(self, handlers, profile, now):
        """A profile without a user record still gets a generic greeting."""
        response = await handlers.respond(Intent.WHO_AM_I, USER_ID, "Who am I?", profile, now)

        assert response.message.startswith("Hello! Based on your data")
        assert response.confidence == 0.9

    @pytest.mark.asyncio
    async def test_interests(self, handlers, profile, now):
        """Interests are listed one per bullet."""
        response = await handlers.respond(Intent.INTERESTS, USER_ID, "", profile, now)

        assert response.message == (
            "Based on your data, here are your interests:\n\n• golf\n• jazz\n• chess\n"
        )
        assert response.confidence == 0.8
        assert response.sources == ["Email Analysis", "File Analysis"]
        assert response.metadata["count"] == 3

    @pytest.mark.asyncio
    async def test_interests_capped(self, handlers, now):
        """At most ten interests are listed."""
        prefs = UserPreferences(interests=[f"topic{i}" for i in range(15)])

        response = await handlers.respond(Intent.INTERESTS, USER_ID, "", prefs, now)

        assert response.message.count("• ") == 10

    @pytest.mark.asyncio
    async def test_relationships_grouped_by_type(self, handlers, profile, now):
        """People are grouped under section headers."""
        response = await handlers.respond(Intent.RELATIONSHIPS, USER_ID, "", profile, now)

        assert "**Doctors:**\n• Grace Kim (St. Mary Hospital)" in response.message
        assert "**Colleagues:**\n• Ben Ray (Acme Corp)" in response.message
        assert "**Friends:**\n• Bob" in response.message
        assert response.confidence == 0.9
        assert response.sources == ["Contacts", "Email Analysis"]
        assert response.metadata["count"] == 3

    @pytest.mark.asyncio
    async def test_tasks(self, handlers, profile, now):
        """Task summary counts pending and completed tasks."""
        response = await handlers.respond(Intent.TASKS, USER_ID, "", profile, now)

        assert "• Pending: 1\n• Completed: 1" in response.message
        assert "• Dentist (Due: Jun 04)" in response.message
        assert "Old call" not in response.message
        assert response.sources == ["Calendar Events", "Email Analysis"]

    @pytest.mark.asyncio
    async def test_tasks_without_due_date(self, handlers, now):
        """Tasks without a due date say so."""
        prefs = UserPreferences(tasks=[TaskItem(title="Someday")])

        response = await handlers.respond(Intent.TASKS, USER_ID, "", prefs, now)

        assert "• Someday (Due: No due date)" in response.message

    @pytest.mark.asyncio
    async def test_health(self, handlers, profile, now):
        """Doctors are listed with specialty and last visit."""
        response = await handlers.respond(Intent.HEALTH, USER_ID, "", profile, now)

        assert "• Dr. Grace Kim - Cardiologist\n  Last visit: May 20, 2024" in response.message
        assert response.confidence == 0.9
        assert response.sources == ["Contacts", "Calendar Events"]

    @pytest.mark.asyncio
    async def test_work(self, handlers, profile, now):
        """Company, colleagues and projects are shown."""
        response = await handlers.respond(Intent.WORK, USER_ID, "", profile, now)

        assert "**Company:** Acme Corp" in response.message
        assert "**Colleagues (1):**\n• Ben Ray" in response.message
        assert "**Projects:**\n• Launch meeting" in response.message
        assert response.confidence == 0.8
        assert response.sources == ["Contacts", "Calendar Events", "Email Analysis"]

    @pytest.mark.asyncio
    async def test_general(self, handlers, now):
        """Unclassified messages get a generic hint."""
        response = await handlers.respond(Intent.GENERAL, USER_ID, "weather?", None, now)

        assert response.confidence == 0.3
        assert response.sources == ["General Knowledge"]
        assert "Who am I?" in response.message


class TestLiveDataHandlers:
    """The files and calendar handlers read raw records directly."""

    @pytest.mark.asyncio
    async def test_files_most_recent_first(self, handlers, store, now):
        """Files are sorted by modification time, newest first."""
        await store.insert_record(drive_file("old.pdf", "application/pdf", 512, now - timedelta(days=30)))
        await store.insert_record(drive_file("new.xlsx", "application/vnd.ms-excel", 1536 * 1024, now - timedelta(days=1)))

        response = await handlers.respond(Intent.FILES, USER_ID, "", None, now)

        assert response.message == (
            "**Recent Files:**\n\n"
            "• new.xlsx (application/vnd.ms-excel) - May 31, 2024 (1.5 MB)\n"
            "• old.pdf (application/pdf) - May 02, 2024 (512 B)\n"
        )
        assert response.confidence == 0.9
        assert response.sources == ["Google Drive"]

    @pytest.mark.asyncio
    async def test_files_capped_at_ten(self, handlers, store, now):
        """At most ten files are listed."""
        for i in range(12):
            await store.insert_record(drive_file(f"f{i}.txt", "text/plain", 1, now - timedelta(hours=i)))

        response = await handlers.respond(Intent.FILES, USER_ID, "", None, now)

        assert response.metadata["count"] == 10
        assert "f0.txt" in response.message
        assert "f11.txt" not in response.message

    @pytest.mark.asyncio
    async def test_calendar_upcoming_only(self, handlers, store, now):
        """Only events starting after now are listed, soonest first."""
        await store.insert_record(event("Past party", now - timedelta(days=1)))
        await store.insert_record(event("Later trip", now + timedelta(days=5), location="Airport"))
        await store.insert_record(event("Soon meeting", now + timedelta(hours=2)))

        response = await handlers.respond(Intent.CALENDAR, USER_ID, "", None, now)

        assert response.message == (
            "**Upcoming Events:**\n\n"
            "• Soon meeting - Jun 01, 2024 14:00\n"
            "• Later trip - Jun 06, 2024 12:00 at Airport\n"
        )
        assert response.sources == ["Calendar"]

    @pytest.mark.asyncio
    async def test_calendar_ignores_unreadable_records(self, handlers, store, now):
        """Malformed calendar records are skipped."""
        await store.insert_record(make_record(DataSource.IOS_CALENDAR, "not json"))

        response = await handlers.respond(Intent.CALENDAR, USER_ID, "", None, now)

        assert response.confidence == 0.0


class TestFormatFileSize:
    """Tests for file size formatting."""

    @pytest.mark.parametrize("size,expected", [
        (0, "0 B"),
        (512, "512 B"),
        (1024, "1 KB"),
        (1536, "1.5 KB"),
        (1536 * 1024, "1.5 MB"),
        (5 * 1024 ** 3, "5 GB"),
        (1234567, "1.18 MB"),
    ])
    def test_sizes(self, size, expected):
        """Sizes use binary units with up to two decimals."""
        assert format_file_size(size) == expected
