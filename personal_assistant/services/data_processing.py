"""Processing pipeline: extract raw records, then rebuild the owner's profile."""

import time
from datetime import timedelta
from typing import Iterable, List, Optional

from personal_assistant.core.config import Settings
from personal_assistant.core.exceptions import AggregationError, ExtractionError, StoreError
from personal_assistant.core.logging import get_logger, log_context, log_exception
from personal_assistant.database.store import RecordStore
from personal_assistant.models import (
    Insight,
    ProcessingResult,
    ProcessingStatus,
    RawRecord,
    UserPreferences,
)
from personal_assistant.services.extractors import extract
from personal_assistant.services.insight_generator import InsightGenerator
from personal_assistant.services.preference_aggregator import PreferenceAggregator

logger = get_logger(__name__)


class DataProcessingService:
    """
    Service driving raw records through extraction and aggregation.

    Handles:
    - Per-record extraction with status bookkeeping
    - Batches where one failing record never aborts the rest
    - Preference rebuilds and insight generation per user
    """

    def __init__(self, store: RecordStore, settings: Settings):
        """Initialize the processing service.

        Args:
            store: Record store collaborator
            settings: Application settings
        """
        self.store = store
        self.settings = settings
        self.aggregator = PreferenceAggregator(store, settings)
        self.insight_generator = InsightGenerator()

    async def process_record(self, record: RawRecord) -> bool:
        """Extract one pending record and rebuild its owner's preferences.

        The stored copy of the record decides whether it is still pending,
        so a record listed twice is only extracted once. A malformed
        payload marks the record Failed. A failed rebuild is logged but the
        record stays Completed.

        Returns:
            True if the record was extracted successfully
        """
        with log_context(record_id=record.id, user_id=record.user_id):
            stored = await self.store.find_record(record.id)
            if stored is None:
                logger.warning("record_not_found")
                return False
            if not stored.is_pending():
                logger.warning("record_not_pending", status=stored.status.value)
                return False

            try:
                fields = extract(stored, self.settings.processing)
            except ExtractionError as e:
                logger.warning("record_extraction_failed", source=stored.source.value, error=str(e))
                await self.store.update_status(stored.id, ProcessingStatus.FAILED, str(e))
                return False

            await self.store.update_processed_fields(stored.id, fields)
            await self.store.update_status(stored.id, ProcessingStatus.COMPLETED)
            logger.info("record_processed", source=stored.source.value, fields=len(fields))

            try:
                await self.aggregator.rebuild(stored.user_id)
            except AggregationError as e:
                log_exception(logger, "preference_rebuild_failed", e)

            return True

    async def process_batch(self, records: Iterable[RawRecord]) -> ProcessingResult:
        """Process records one after another, isolating failures.

        Returns:
            Counts of processed and failed records with their error messages
        """
        start = time.perf_counter()
        result = ProcessingResult()

        for record in records:
            try:
                if await self.process_record(record):
                    result.processed_count += 1
                    continue
                error = await self._failure_reason(record)
            except StoreError as e:
                log_exception(logger, "record_processing_failed", e, record_id=record.id)
                error = str(e)
            except Exception as e:
                log_exception(logger, "record_processing_crashed", e, record_id=record.id)
                error = f"unexpected {type(e).__name__}: {e}"
                await self._mark_failed(record, error)

            result.failed_count += 1
            result.errors.append(f"{record.id}: {error}")

        result.success = result.failed_count == 0
        result.processing_time = timedelta(seconds=time.perf_counter() - start)

        logger.info(
            "batch_processed",
            processed=result.processed_count,
            failed=result.failed_count,
            duration_ms=int(result.processing_time.total_seconds() * 1000),
        )
        return result

    async def _mark_failed(self, record: RawRecord, error: str) -> None:
        try:
            await self.store.update_status(record.id, ProcessingStatus.FAILED, error)
        except Exception as e:
            log_exception(logger, "record_status_update_failed", e, record_id=record.id)

    async def _failure_reason(self, record: RawRecord) -> str:
        stored = await self.store.find_record(record.id)
        if stored is None:
            return "record not found"
        if stored.error_message:
            return stored.error_message
        if not stored.is_pending():
            return f"not pending (status {stored.status.value})"
        return "processing failed"

    async def process_pending(self, limit: Optional[int] = None) -> ProcessingResult:
        """Process the oldest pending records in the store."""
        limit = limit or self.settings.processing.pending_batch_limit
        records = await self.store.find_pending(limit)
        logger.info("pending_records_found", count=len(records), limit=limit)
        return await self.process_batch(records)

    async def rebuild_preferences(self, user_id: str) -> bool:
        """Rebuild a user's preferences; False when the store failed."""
        try:
            await self.aggregator.rebuild(user_id)
        except AggregationError as e:
            log_exception(logger, "preference_rebuild_failed", e, user_id=user_id)
            return False
        return True

    async def get_preferences(self, user_id: str) -> Optional[UserPreferences]:
        """Stored preferences of a user, if any."""
        return await self.store.get_preferences(user_id)

    async def update_preferences(self, user_id: str, preferences: UserPreferences) -> bool:
        """Replace a user's stored preferences as a whole."""
        try:
            await self.store.save_preferences(user_id, preferences)
        except StoreError as e:
            log_exception(logger, "preferences_update_failed", e, user_id=user_id)
            return False
        logger.info("preferences_updated", user_id=user_id)
        return True

    async def generate_insights(self, user_id: str) -> List[Insight]:
        """Insights from the stored preferences; empty when there are none."""
        preferences = await self.store.get_preferences(user_id)
        if preferences is None:
            return []
        return self.insight_generator.generate(preferences)
