"""Rule-based classifiers used during extraction and aggregation.

All functions here are pure and deterministic. Rule tables are ordered:
the first matching rule wins.
"""

import string
from collections import Counter
from typing import List, Optional, Tuple

from personal_assistant.models import EventCategory, FileCategory, RelationshipType

STOP_WORDS = frozenset({
    "the", "and", "for", "are", "but", "not", "you", "all", "can", "had", "her",
    "was", "one", "our", "out", "day", "get", "has", "him", "his", "how", "its",
    "may", "new", "now", "old", "see", "two", "way", "who", "boy", "did", "man",
    "oil", "sit", "try", "use", "she", "this", "that", "with", "have", "will",
    "your", "from", "they", "know", "want", "been", "good", "much", "some",
    "time", "very", "when", "come", "here", "just", "like", "long", "make",
    "many", "over", "such", "take", "than", "them", "well", "were",
})

ORGANIZATION_RULES: Tuple[Tuple[Tuple[str, ...], RelationshipType], ...] = (
    (("doctor", "medical", "hospital"), RelationshipType.DOCTOR),
    (("company", "corp", "inc"), RelationshipType.COLLEAGUE),
)
FAMILY_NAME_TERMS = ("mom", "dad", "mother", "father")

MIME_PREFIX_RULES: Tuple[Tuple[str, FileCategory], ...] = (
    ("image/", FileCategory.IMAGE),
    ("video/", FileCategory.VIDEO),
    ("audio/", FileCategory.AUDIO),
)
MIME_SUBSTRING_RULES: Tuple[Tuple[str, FileCategory], ...] = (
    ("pdf", FileCategory.DOCUMENT),
    ("word", FileCategory.DOCUMENT),
    ("excel", FileCategory.SPREADSHEET),
    ("powerpoint", FileCategory.PRESENTATION),
)

EVENT_RULES: Tuple[Tuple[Tuple[str, ...], EventCategory], ...] = (
    (("meeting", "call"), EventCategory.WORK),
    (("doctor", "medical", "appointment"), EventCategory.HEALTH),
    (("birthday", "party", "celebration"), EventCategory.PERSONAL),
    (("travel", "trip", "vacation"), EventCategory.TRAVEL),
)


def _contains_any(text: str, terms: Tuple[str, ...]) -> bool:
    return any(term in text for term in terms)


def extract_keywords(text: Optional[str], limit: int = 10, min_length: int = 4) -> List[str]:
    """Most frequent meaningful words of a short text.

    Words are lowercased and stripped of surrounding punctuation; words
    shorter than ``min_length`` and stop words are dropped. Ties keep
    first-occurrence order.

    Examples:
        >>> extract_keywords("Quarterly budget review: budget draft")
        ['budget', 'quarterly', 'review', 'draft']
    """
    if not text:
        return []

    words = []
    for raw_word in text.lower().split():
        word = raw_word.strip(string.punctuation)
        if len(word) >= min_length and word not in STOP_WORDS:
            words.append(word)

    # Counter preserves insertion order and most_common sorts stably
    return [word for word, _ in Counter(words).most_common(limit)]


def classify_relationship(name: Optional[str], organization: Optional[str]) -> RelationshipType:
    """Classify how a contact relates to the user.

    Organization terms are checked before name terms.

    Examples:
        >>> classify_relationship("John Smith", "City Hospital")
        <RelationshipType.DOCTOR: 'Doctor'>
        >>> classify_relationship("Mom", None)
        <RelationshipType.FAMILY: 'Family'>
    """
    name_text = (name or "").lower()
    organization_text = (organization or "").lower()

    for terms, relationship_type in ORGANIZATION_RULES:
        if _contains_any(organization_text, terms):
            return relationship_type

    if _contains_any(name_text, FAMILY_NAME_TERMS):
        return RelationshipType.FAMILY

    return RelationshipType.FRIEND


def categorize_file(mime_type: Optional[str]) -> FileCategory:
    """Map a MIME type to a file category."""
    mime = (mime_type or "").lower()

    for prefix, category in MIME_PREFIX_RULES:
        if mime.startswith(prefix):
            return category

    for fragment, category in MIME_SUBSTRING_RULES:
        if fragment in mime:
            return category

    return FileCategory.OTHER


def categorize_event(title: Optional[str], description: Optional[str] = None) -> EventCategory:
    """Map a calendar event's title and description to a category."""
    text = f"{title or ''} {description or ''}".lower()

    for terms, category in EVENT_RULES:
        if _contains_any(text, terms):
            return category

    return EventCategory.OTHER
