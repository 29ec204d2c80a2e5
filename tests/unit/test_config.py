"""Tests for configuration management."""

import pytest
from pydantic import ValidationError

from personal_assistant.core.config import (
    AppConfig,
    ChatConfig,
    ProcessingConfig,
    Settings,
    StoreConfig,
    get_settings,
    reset_settings,
)


class TestStoreConfig:
    """Tests for store configuration."""

    def test_default_values(self):
        """Test default configuration values."""
        config = StoreConfig()
        assert config.backend == "memory"
        assert config.sqlite_path.endswith(".db")

    def test_backend_validation(self):
        """Backend names are case-insensitive and checked."""
        assert StoreConfig(backend="SQLite").backend == "sqlite"
        with pytest.raises(ValidationError, match="Invalid store backend"):
            StoreConfig(backend="mongodb")

    def test_env_prefix(self, monkeypatch):
        """Test loading from environment with prefix."""
        monkeypatch.setenv("STORE_BACKEND", "sqlite")
        monkeypatch.setenv("STORE_SQLITE_PATH", ":memory:")

        config = StoreConfig()
        assert config.backend == "sqlite"
        assert config.sqlite_path == ":memory:"


class TestProcessingConfig:
    """Tests for processing configuration."""

    def test_default_values(self):
        """Test default configuration values."""
        config = ProcessingConfig()
        assert config.keyword_limit == 10
        assert config.min_keyword_length == 4
        assert config.relationship_confidence == 0.8
        assert config.pending_batch_limit == 100
        assert config.derive_health_and_work is True

    def test_bounds(self):
        """Out-of-range values are rejected."""
        with pytest.raises(ValidationError):
            ProcessingConfig(keyword_limit=0)
        with pytest.raises(ValidationError):
            ProcessingConfig(relationship_confidence=1.5)

    def test_batch_limit_validation(self):
        """Very large batches are rejected with a recommendation."""
        assert ProcessingConfig(pending_batch_limit=1000).pending_batch_limit == 1000
        with pytest.raises(ValidationError, match="Recommended"):
            ProcessingConfig(pending_batch_limit=1001)
        with pytest.raises(ValidationError, match="Recommended"):
            ProcessingConfig(pending_batch_limit=20000)

    def test_env_prefix(self, monkeypatch):
        """Test loading from environment with prefix."""
        monkeypatch.setenv("PROCESSING_KEYWORD_LIMIT", "5")
        monkeypatch.setenv("PROCESSING_DERIVE_HEALTH_AND_WORK", "false")

        config = ProcessingConfig()
        assert config.keyword_limit == 5
        assert config.derive_health_and_work is False


class TestChatConfig:
    """Tests for chat configuration."""

    def test_default_questions(self):
        """Ten starter questions are configured by default."""
        config = ChatConfig()
        assert len(config.suggested_questions) == 10
        assert "Who are my friends?" in config.suggested_questions

    def test_questions_from_json_env(self, monkeypatch):
        """Questions can be overridden with a JSON list."""
        monkeypatch.setenv("CHAT_SUGGESTED_QUESTIONS", '["Who am I?", "  "]')
        assert ChatConfig().suggested_questions == ["Who am I?"]

    def test_empty_questions_rejected(self):
        """An empty question list is invalid."""
        with pytest.raises(ValidationError, match="cannot be empty"):
            ChatConfig(suggested_questions=["", " "])


class TestAppConfig:
    """Tests for application configuration."""

    def test_default_values(self):
        """Test default configuration values."""
        config = AppConfig()
        assert config.log_level == "INFO"
        assert config.environment == "development"
        assert config.json_logs is False

    def test_log_level_validation(self):
        """Test log level validation."""
        assert AppConfig(log_level="debug").log_level == "DEBUG"
        with pytest.raises(ValidationError):
            AppConfig(log_level="INVALID")

    def test_environment_validation(self):
        """Test environment validation."""
        assert AppConfig(environment="Production").environment == "production"
        with pytest.raises(ValidationError):
            AppConfig(environment="moon")


class TestSettings:
    """Tests for main settings container."""

    def teardown_method(self):
        """Reset settings after each test."""
        reset_settings()

    def test_nested_config_access(self):
        """Test accessing nested configuration."""
        settings = Settings()
        assert settings.processing.keyword_limit == 10
        assert settings.chat.max_listed_items == 10
        assert settings.store.backend == "memory"

    def test_environment_checks(self):
        """Test production and testing mode detection."""
        assert Settings(app=AppConfig(environment="production")).is_production() is True
        assert Settings(app=AppConfig(environment="testing")).is_testing() is True
        assert Settings().is_production() is False

    def test_to_dict(self):
        """All sections are exported."""
        assert set(Settings().to_dict()) == {"app", "store", "processing", "chat"}

    def test_validate_all_in_production(self):
        """Production warns about volatile storage and debug logging."""
        settings = Settings(app=AppConfig(environment="production", log_level="DEBUG"))
        messages = settings.validate_all()

        assert any("in-memory store" in m for m in messages)
        assert any("DEBUG" in m for m in messages)
        assert Settings().validate_all() == []

    def test_load_for_environment(self, tmp_path, monkeypatch):
        """Environment-specific .env files feed every section."""
        monkeypatch.chdir(tmp_path)
        (tmp_path / ".env.staging").write_text(
            "APP_ENVIRONMENT=staging\n"
            "STORE_BACKEND=sqlite\n"
            "PROCESSING_KEYWORD_LIMIT=3\n"
            "CHAT_MAX_LISTED_ITEMS=4\n"
        )

        settings = Settings.load_for_environment("staging")

        assert settings.app.environment == "staging"
        assert settings.store.backend == "sqlite"
        assert settings.processing.keyword_limit == 3
        assert settings.chat.max_listed_items == 4


class TestGlobalSettings:
    """Tests for bootstrap settings management."""

    def teardown_method(self):
        """Reset settings after each test."""
        reset_settings()

    def test_get_settings_singleton(self):
        """Test settings singleton pattern."""
        assert get_settings() is get_settings()

    def test_get_settings_reload(self, monkeypatch):
        """Test reloading settings."""
        settings1 = get_settings()
        monkeypatch.setenv("PROCESSING_KEYWORD_LIMIT", "7")

        assert get_settings(reload=False).processing.keyword_limit == settings1.processing.keyword_limit
        assert get_settings(reload=True).processing.keyword_limit == 7

    def test_reset_settings(self):
        """Test resetting settings."""
        settings1 = get_settings()
        reset_settings()
        assert get_settings() is not settings1
