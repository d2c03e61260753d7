"""Tests for config.schema."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from config.schema import LoggingConfig, ParamdeckSettings, StorageConfig, TimingConfig


class TestDefaults:
    def test_settings_defaults(self):
        settings = ParamdeckSettings()

        assert settings.timing.navigation_settle_ms == 200
        assert settings.timing.propagation_delay_ms == 100
        assert settings.storage.strategy == "sqlite"
        assert settings.storage.db_path is None
        assert settings.logging.level == "INFO"


class TestTimingConfig:
    def test_zero_is_allowed(self):
        assert TimingConfig(navigation_settle_ms=0).navigation_settle_ms == 0

    def test_negative_rejected(self):
        with pytest.raises(ValidationError):
            TimingConfig(propagation_delay_ms=-1)


class TestStorageConfig:
    def test_db_path_expands_home(self):
        config = StorageConfig(db_path="~/decks/p.db")
        assert config.db_path == str(Path.home() / "decks" / "p.db")

    def test_empty_db_path_is_none(self):
        assert StorageConfig(db_path="").db_path is None

    def test_unknown_strategy_rejected(self):
        with pytest.raises(ValidationError):
            StorageConfig(strategy="redis")


class TestLoggingConfig:
    def test_level_is_normalized(self):
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_unknown_level_rejected(self):
        with pytest.raises(ValidationError, match="Unknown log level"):
            LoggingConfig(level="chatty")
