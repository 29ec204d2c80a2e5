"""Human-readable summaries of a preference snapshot."""

from datetime import datetime
from typing import List, Optional

from personal_assistant.models import Insight, UserPreferences, utc_now

INTEREST_PREVIEW = 5


class InsightGenerator:
    """Derives at most one insight per category, in a fixed order."""

    def generate(
        self, preferences: UserPreferences, now: Optional[datetime] = None
    ) -> List[Insight]:
        """Interests, relationships and tasks insights, skipping empty categories."""
        now = now or utc_now()
        insights: List[Insight] = []

        if preferences.interests:
            preview = ", ".join(preferences.interests[:INTEREST_PREVIEW])
            insights.append(Insight(
                type="Interests",
                description=(
                    f"You have {len(preferences.interests)} identified interests: {preview}"
                ),
                confidence=0.8,
                data={"interests": list(preferences.interests)},
                generated_at=now,
            ))

        if preferences.relationships:
            insights.append(Insight(
                type="Relationships",
                description=f"You have {len(preferences.relationships)} identified relationships",
                confidence=0.9,
                data={"count": len(preferences.relationships)},
                generated_at=now,
            ))

        if preferences.tasks:
            pending = preferences.pending_tasks()
            insights.append(Insight(
                type="Tasks",
                description=f"You have {len(pending)} pending tasks",
                confidence=1.0,
                data={"pending_tasks": [t.title for t in pending]},
                generated_at=now,
            ))

        return insights
