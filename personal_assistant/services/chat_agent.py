"""Chat sessions and message routing.

A message is classified, answered by the matching handler, and stored with
its answer in the session. ``process_message`` always returns a response:
failures turn into low-confidence apologies instead of exceptions.
"""

from typing import List, Optional

from personal_assistant.core.config import Settings
from personal_assistant.core.exceptions import (
    ResponseGenerationError,
    SessionNotFoundError,
    StoreError,
)
from personal_assistant.core.logging import get_logger, log_context, log_exception
from personal_assistant.database.store import RecordStore
from personal_assistant.models import ChatResponse, ChatSession, MessageRole, utc_now
from personal_assistant.services.intent_classifier import classify
from personal_assistant.services.response_handlers import ResponseHandlers

logger = get_logger(__name__)

SESSION_NOT_FOUND_MESSAGE = (
    "I'm sorry, I couldn't create or retrieve your chat session. Please try again."
)
GENERATION_FAILED_MESSAGE = (
    "I'm sorry, I couldn't process your request at the moment. Please try again."
)
PROCESSING_FAILED_MESSAGE = (
    "I'm sorry, I encountered an error while processing your message. Please try again."
)


class ChatAgentService:
    """
    Service for conversational queries over a user's data.

    Handles:
    - Session lifecycle (create, fetch, replace, soft delete)
    - Intent classification and response synthesis
    - Suggested starter questions
    """

    def __init__(self, store: RecordStore, settings: Settings):
        """Initialize the chat service.

        Args:
            store: Record store collaborator
            settings: Application settings
        """
        self.store = store
        self.settings = settings
        self.handlers = ResponseHandlers(store, settings)

    # =========================================================================
    # Sessions
    # =========================================================================

    async def create_session(self, user_id: str) -> ChatSession:
        """Start an empty, active session for a user."""
        session = ChatSession(user_id=user_id)
        await self.store.insert_session(session)
        logger.info("chat_session_created", session_id=session.session_id, user_id=user_id)
        return session

    async def get_session(self, session_id: str) -> Optional[ChatSession]:
        """Get a session by its public id, active or not."""
        return await self.store.get_session(session_id)

    async def require_session(self, session_id: str, user_id: Optional[str] = None) -> ChatSession:
        """Get an active session, owned by ``user_id`` when one is given.

        Raises:
            SessionNotFoundError: unknown or deleted session, or a session
                of another user
        """
        session = await self.store.get_session(session_id)
        if session is None or not session.is_active:
            raise SessionNotFoundError(session_id)
        if user_id is not None and session.user_id != user_id:
            raise SessionNotFoundError(session_id)
        return session

    async def update_session(self, session: ChatSession) -> bool:
        """Replace a stored session as a whole."""
        try:
            return await self.store.replace_session(session)
        except StoreError as e:
            log_exception(logger, "chat_session_update_failed", e, session_id=session.session_id)
            return False

    async def get_user_sessions(self, user_id: str, limit: Optional[int] = None) -> List[ChatSession]:
        """A user's sessions, most recent activity first."""
        limit = limit or self.settings.chat.session_list_limit
        return await self.store.find_sessions(user_id, limit)

    async def delete_session(self, session_id: str) -> bool:
        """Deactivate a session; its history is kept."""
        session = await self.store.get_session(session_id)
        if session is None:
            return False
        session.deactivate()
        deleted = await self.update_session(session)
        if deleted:
            logger.info("chat_session_deleted", session_id=session_id)
        return deleted

    def get_suggested_questions(self, user_id: Optional[str] = None) -> List[str]:
        """Starter questions for users who do not know what to ask."""
        return list(self.settings.chat.suggested_questions)

    # =========================================================================
    # Messages
    # =========================================================================

    async def process_message(
        self, user_id: str, text: str, session_id: Optional[str] = None
    ) -> ChatResponse:
        """Answer a message and record both sides of the exchange.

        Without ``session_id`` a new session is created. An unknown or
        deleted session, or one owned by another user, yields a response
        with ``metadata.error`` set to ``session_not_found``.
        """
        with log_context(user_id=user_id, session_id=session_id):
            try:
                if session_id:
                    session = await self.require_session(session_id, user_id)
                else:
                    session = await self.create_session(user_id)
            except SessionNotFoundError as e:
                logger.warning("chat_session_not_found", error=str(e))
                return ChatResponse(
                    message=SESSION_NOT_FOUND_MESSAGE,
                    session_id=session_id or "",
                    confidence=0.0,
                    metadata={"error": "session_not_found"},
                )
            except StoreError as e:
                log_exception(logger, "chat_session_unavailable", e)
                return self._processing_failed(session_id)

            session.add_message(MessageRole.USER, text)

            try:
                response = await self._generate(user_id, text)
            except ResponseGenerationError as e:
                log_exception(logger, "response_generation_failed", e)
                response = ChatResponse(
                    message=GENERATION_FAILED_MESSAGE,
                    confidence=0.0,
                    metadata={"error": "response_generation_failed"},
                )
            response.session_id = session.session_id

            session.add_message(
                MessageRole.ASSISTANT,
                response.message,
                sources=response.sources,
                metadata=response.metadata,
                timestamp=response.timestamp,
            )
            session.context["last_intent"] = response.metadata.get("intent")
            session.context["message_count"] = len(session.messages)
            session.update_timestamp()

            if not await self.update_session(session):
                logger.warning("chat_session_not_saved", session_id=session.session_id)

            logger.info(
                "message_processed",
                session_id=session.session_id,
                intent=response.metadata.get("intent"),
                confidence=response.confidence,
            )
            return response

    async def _generate(self, user_id: str, text: str) -> ChatResponse:
        try:
            preferences = await self.store.get_preferences(user_id)
            intent = classify(text)
            return await self.handlers.respond(
                intent, user_id, text, preferences, now=utc_now()
            )
        except Exception as e:
            raise ResponseGenerationError(f"Could not answer message: {e}") from e

    def _processing_failed(self, session_id: Optional[str]) -> ChatResponse:
        return ChatResponse(
            message=PROCESSING_FAILED_MESSAGE,
            session_id=session_id or "",
            confidence=0.0,
            metadata={"error": "processing_failed"},
        )
