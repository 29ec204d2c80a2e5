"""Processing pipeline and chat services."""

from personal_assistant.services.chat_agent import ChatAgentService
from personal_assistant.services.classifiers import (
    categorize_event,
    categorize_file,
    classify_relationship,
    extract_keywords,
)
from personal_assistant.services.data_processing import DataProcessingService
from personal_assistant.services.extractors import extract, resolve_payload
from personal_assistant.services.insight_generator import InsightGenerator
from personal_assistant.services.intent_classifier import classify
from personal_assistant.services.preference_aggregator import PreferenceAggregator
from personal_assistant.services.response_handlers import ResponseHandlers, format_file_size

__all__ = [
    "ChatAgentService",
    "DataProcessingService",
    "InsightGenerator",
    "PreferenceAggregator",
    "ResponseHandlers",
    "categorize_event",
    "categorize_file",
    "classify",
    "classify_relationship",
    "extract",
    "extract_keywords",
    "format_file_size",
    "resolve_payload",
]
