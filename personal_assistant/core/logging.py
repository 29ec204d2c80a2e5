"""Structured logging for the processing pipeline and the chat router.

Log lines are structlog events with snake_case names and key/value fields.
Per-operation ids (user, record, session) are bound with ``log_context``
and merged into every line emitted inside the block.
"""

import logging
import sys
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, List, Optional

import structlog
from structlog.types import EventDict, Processor

from personal_assistant.core.config import AppConfig

CONTEXT_KEYS = ("user_id", "session_id", "record_id")


def add_exception_info(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add exception type and message as fields when ``exc_info`` is set."""
    exc_info = event_dict.get('exc_info')
    if exc_info:
        if exc_info is True:
            exc_info = sys.exc_info()
        if isinstance(exc_info, tuple) and len(exc_info) == 3:
            exc_type, exc_value, _ = exc_info
            if exc_type is not None:
                event_dict.setdefault('exception_type', exc_type.__name__)
                event_dict.setdefault('exception_message', str(exc_value))
    return event_dict


def drop_unset_context(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Remove context ids bound as None (e.g. a message without a session yet)."""
    for key in CONTEXT_KEYS:
        if key in event_dict and event_dict[key] is None:
            del event_dict[key]
    return event_dict


def build_processors(json_format: bool = False) -> List[Processor]:
    """Processor chain shared by console and JSON output."""
    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        drop_unset_context,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            ]
        ),
        add_exception_info,
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())
    return processors


def setup_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
    enable_console: bool = True,
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: If True, render JSON lines; otherwise console output
        log_file: Optional path of a rotating log file
        max_bytes: Maximum bytes per log file
        backup_count: Number of rotated files to keep
        enable_console: If True, also log to stdout

    Examples:
        >>> setup_logging(log_level="INFO")

        >>> setup_logging(json_format=True, log_file="logs/assistant.json")
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    structlog.configure(
        processors=build_processors(json_format),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers: List[logging.Handler] = []

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(numeric_level)
        handlers.append(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            filename=log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8',
        )
        file_handler.setLevel(numeric_level)
        handlers.append(file_handler)

    logging.basicConfig(
        format="%(message)s",
        level=numeric_level,
        handlers=handlers,
        force=True,
    )


def configure_logging(config: AppConfig) -> None:
    """Set up logging from the application config section."""
    setup_logging(
        log_level=config.log_level,
        json_format=config.json_logs,
        log_file=config.log_file,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger for a module.

    Examples:
        >>> logger = get_logger(__name__)
        >>> logger.info("record_processed", record_id="01H...", source="gmail")
    """
    return structlog.get_logger(name)


@contextmanager
def log_context(**context: Any):
    """Bind context to every log line emitted inside the block.

    Values live in structlog context vars, so they follow the current task
    across awaits and are reset on exit.

    Examples:
        >>> with log_context(user_id="u-1", session_id="s-1"):
        ...     get_logger(__name__).info("message_received")
    """
    tokens = structlog.contextvars.bind_contextvars(**context)
    try:
        yield
    finally:
        structlog.contextvars.reset_contextvars(**tokens)


def log_exception(
    logger: structlog.stdlib.BoundLogger,
    event: str,
    exception: Exception,
    **context: Any
) -> None:
    """Log an exception with its type and message as fields.

    Examples:
        >>> try:
        ...     await aggregator.rebuild(user_id)
        ... except AggregationError as e:
        ...     log_exception(logger, "preference_rebuild_failed", e, user_id=user_id)
    """
    logger.error(
        event,
        exception_type=type(exception).__name__,
        exception_message=str(exception),
        exc_info=exception,
        **context
    )
