"""Configuration management with environment support and validation.

This module provides:
- Type-safe configuration with Pydantic
- Environment variable loading (one prefix per section)
- Environment-specific .env files
- Validation with explanatory messages

Components never read configuration from module state: a ``Settings``
value is built once at bootstrap and passed to each component's
constructor.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class StoreConfig(BaseSettings):
    """Persistence backend configuration."""

    backend: str = Field(
        default="memory",
        description="Store backend (memory, sqlite)"
    )
    sqlite_path: str = Field(
        default="./data/personal_assistant.db",
        description="SQLite database path (':memory:' for an in-process database)"
    )

    @field_validator('backend')
    def validate_backend(cls, v):
        """Validate backend name."""
        valid_backends = ['memory', 'sqlite']
        v_lower = v.lower()
        if v_lower not in valid_backends:
            raise ValueError(
                f'Invalid store backend: {v}. Must be one of: {", ".join(valid_backends)}'
            )
        return v_lower

    model_config = {
        "env_prefix": "STORE_",
        "case_sensitive": False,
        "extra": "ignore"
    }


class ProcessingConfig(BaseSettings):
    """Extraction and preference aggregation configuration."""

    keyword_limit: int = Field(
        default=10,
        description="Maximum keywords extracted from one email subject",
        ge=1,
        le=50
    )
    min_keyword_length: int = Field(
        default=4,
        description="Minimum length of a keyword (shorter words are ignored)",
        ge=1,
        le=20
    )
    relationship_confidence: float = Field(
        default=0.8,
        description="Confidence assigned to relationships inferred from contacts",
        ge=0.0,
        le=1.0
    )
    pending_batch_limit: int = Field(
        default=100,
        description="Maximum pending records picked up by one process_pending call",
        ge=1
    )
    derive_health_and_work: bool = Field(
        default=True,
        description="Derive health and work facts from classified contacts and events"
    )

    @field_validator('pending_batch_limit')
    def validate_batch_limit(cls, v):
        """Validate batch size is reasonable."""
        if v > 1000:
            raise ValueError(
                f'pending_batch_limit={v} keeps one batch running for a long time. '
                'Recommended: 50-500 records.'
            )
        return v

    model_config = {
        "env_prefix": "PROCESSING_",
        "case_sensitive": False,
        "extra": "ignore"
    }


class ChatConfig(BaseSettings):
    """Chat router configuration."""

    max_listed_items: int = Field(
        default=10,
        description="Maximum files, events or interests listed in one answer",
        ge=1,
        le=50
    )
    max_preview_items: int = Field(
        default=5,
        description="Maximum items previewed per section (tasks, colleagues, friends)",
        ge=1,
        le=20
    )
    session_list_limit: int = Field(
        default=10,
        description="Default number of sessions returned when listing a user's sessions",
        ge=1,
        le=100
    )
    suggested_questions: List[str] = Field(
        default_factory=lambda: [
            "Who am I?",
            "What do I like to eat?",
            "What are my passions?",
            "What are my doctors?",
            "Who are my friends?",
            "What tasks should I do?",
            "What are my recent interests?",
            "Who do I work with?",
            "What are my upcoming events?",
            "What files have I been working on?",
        ],
        description="Questions offered to users who do not know what to ask"
    )

    @field_validator('suggested_questions')
    def validate_suggested_questions(cls, v):
        """Validate suggested questions list is not empty."""
        cleaned = [q.strip() for q in v if q.strip()]
        if not cleaned:
            raise ValueError(
                'suggested_questions cannot be empty. Add at least one question.'
            )
        return cleaned

    model_config = {
        "env_prefix": "CHAT_",
        "case_sensitive": False,
        "extra": "ignore"
    }


class AppConfig(BaseSettings):
    """Application-level configuration."""

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    json_logs: bool = Field(
        default=False,
        description="Emit JSON log lines instead of console output"
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Optional rotating log file path"
    )
    environment: str = Field(
        default="development",
        description="Environment name (development, production, testing, staging)"
    )

    @field_validator('log_level')
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(
                f'Invalid log_level: {v}. Must be one of: {", ".join(valid_levels)}'
            )
        return v_upper

    @field_validator('environment')
    def validate_environment(cls, v):
        """Validate environment name."""
        valid_envs = ['development', 'production', 'testing', 'staging']
        v_lower = v.lower()
        if v_lower not in valid_envs:
            raise ValueError(
                f'Invalid environment: {v}. Must be one of: {", ".join(valid_envs)}'
            )
        return v_lower

    model_config = {
        "env_prefix": "APP_",
        "case_sensitive": False,
        "extra": "ignore"
    }


class Settings(BaseSettings):
    """Main settings class combining all configuration sections.

    Examples:
        >>> settings = Settings()
        >>> settings.processing.keyword_limit
        10

        >>> settings = Settings(store=StoreConfig(backend="sqlite", sqlite_path=":memory:"))
    """

    app: AppConfig = Field(default_factory=AppConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    processing: ProcessingConfig = Field(default_factory=ProcessingConfig)
    chat: ChatConfig = Field(default_factory=ChatConfig)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore"
    }

    @classmethod
    def load_for_environment(cls, environment: str) -> "Settings":
        """Load settings for a specific environment.

        Reads ``.env.<environment>`` when it exists, ``.env`` otherwise.
        """
        env_file = f".env.{environment}"
        if not Path(env_file).exists():
            env_file = ".env"
        return cls(
            app=AppConfig(_env_file=env_file),
            store=StoreConfig(_env_file=env_file),
            processing=ProcessingConfig(_env_file=env_file),
            chat=ChatConfig(_env_file=env_file),
        )

    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app.environment == "production"

    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.app.environment == "testing"

    def to_dict(self) -> Dict[str, Any]:
        """Export current configuration as dictionary."""
        return {
            "app": self.app.model_dump(),
            "store": self.store.model_dump(),
            "processing": self.processing.model_dump(),
            "chat": self.chat.model_dump(),
        }

    def validate_all(self) -> List[str]:
        """Cross-section validation.

        Returns:
            List of validation messages (empty if all valid)
        """
        messages = []

        if self.is_production():
            if self.store.backend == "memory":
                messages.append("WARNING: in-memory store in production loses all data on restart")
            if self.store.sqlite_path == ":memory:":
                messages.append("WARNING: SQLite ':memory:' database in production")
            if self.app.log_level == "DEBUG":
                messages.append("WARNING: DEBUG logging in production environment")

        return messages


_settings: Optional[Settings] = None


def get_settings(reload: bool = False) -> Settings:
    """Get or create the bootstrap settings instance.

    Only process bootstrap code should call this; components take the
    returned value as a constructor argument.
    """
    global _settings
    if _settings is None or reload:
        env = os.getenv("APP_ENVIRONMENT", "development")
        _settings = Settings.load_for_environment(env)
    return _settings


def reset_settings() -> None:
    """Reset the bootstrap settings (useful for testing)."""
    global _settings
    _settings = None
