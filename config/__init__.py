"""Configuration management for paramdeck."""

from .loader import SettingsLoader, load_settings
from .log_setup import configure_logging
from .schema import LoggingConfig, ParamdeckSettings, StorageConfig, TimingConfig

__all__ = [
    "LoggingConfig",
    "ParamdeckSettings",
    "SettingsLoader",
    "StorageConfig",
    "TimingConfig",
    "configure_logging",
    "load_settings",
]
