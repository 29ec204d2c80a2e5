"""Error taxonomy for the processing pipeline and the chat router."""

from typing import Optional


class PersonalAssistantError(Exception):
    """Base class for all errors raised by the assistant core."""


class ExtractionError(PersonalAssistantError):
    """A raw record payload is malformed or has an unexpected shape."""

    def __init__(self, message: str, record_id: Optional[str] = None):
        super().__init__(message)
        self.record_id = record_id


class StoreError(PersonalAssistantError):
    """A store read or write failed."""


class AggregationError(PersonalAssistantError):
    """Rebuilding a user's preferences failed; stored preferences are unchanged."""

    def __init__(self, message: str, user_id: Optional[str] = None):
        super().__init__(message)
        self.user_id = user_id


class ResponseGenerationError(PersonalAssistantError):
    """A response handler failed unexpectedly."""


class SessionNotFoundError(PersonalAssistantError):
    """No active chat session exists for the given session id."""

    def __init__(self, session_id: str):
        super().__init__(f"Chat session not found: {session_id}")
        self.session_id = session_id
