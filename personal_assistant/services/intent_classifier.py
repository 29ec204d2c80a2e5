"""Keyword-containment intent classification."""

from typing import List, Tuple

from personal_assistant.models import Intent

# Checked in order; the first rule with a matching phrase wins.
# "do" is deliberately broad and shadows later rules ("documents", "doctor").
INTENT_RULES: List[Tuple[Intent, Tuple[str, ...]]] = [
    (Intent.WHO_AM_I, ("who am i", "tell me about myself")),
    (Intent.INTERESTS, ("like", "interest", "passion")),
    (Intent.RELATIONSHIPS, ("friend", "relationship", "know")),
    (Intent.TASKS, ("task", "todo", "do")),
    (Intent.HEALTH, ("doctor", "health", "medical")),
    (Intent.WORK, ("work", "colleague", "company")),
    (Intent.FILES, ("file", "document", "drive")),
    (Intent.CALENDAR, ("calendar", "event", "meeting")),
]


def classify(text: str) -> Intent:
    """Map free text to an intent; ``Intent.GENERAL`` when nothing matches.

    Examples:
        >>> classify("Who am I?")
        <Intent.WHO_AM_I: 'who_am_i'>
        >>> classify("What do I like to eat?")
        <Intent.INTERESTS: 'interests'>
    """
    folded = text.casefold()
    for intent, phrases in INTENT_RULES:
        if any(phrase in folded for phrase in phrases):
            return intent
    return Intent.GENERAL
