"""Core configuration schema for paramdeck using Pydantic.

Groups:
- timing: fixed waits standing in for host completion signals
- storage: durable store strategy and location
- logging: root logger level and format
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

# ============================================================================
# Timing Configuration
# ============================================================================


class TimingConfig(BaseModel):
    """Empirical waits; tunable, not load-bearing."""

    navigation_settle_ms: int = Field(200, ge=0, description="Wait after a batched navigation before cookies/local entries")
    propagation_delay_ms: int = Field(100, ge=0, description="Wait before re-verifying a retried write")


# ============================================================================
# Storage Configuration
# ============================================================================


class StorageConfig(BaseModel):
    """Durable store selection."""

    strategy: Literal["sqlite", "memory", "custom"] = Field("sqlite", description="Store provider")
    db_path: str | None = Field(None, description="SQLite file (default ~/.paramdeck/paramdeck.db)")
    store_factory: str | None = Field(None, description="'<module>:<callable>' for the custom strategy")

    @field_validator("db_path")
    @classmethod
    def expand_db_path(cls, v: str | None) -> str | None:
        if not v:
            return None
        return str(Path(v).expanduser())


# ============================================================================
# Logging Configuration
# ============================================================================


class LoggingConfig(BaseModel):
    level: str = Field("INFO", description="Root log level")
    format: str = Field("%(asctime)s %(levelname)s %(name)s: %(message)s", description="Log record format")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {v}")
        return level


# ============================================================================
# Main Settings
# ============================================================================


class ParamdeckSettings(BaseModel):
    """Main paramdeck configuration.

    Configuration priority (highest to lowest):
    1. CLI overrides
    2. Project config (.paramdeck/settings.yaml)
    3. User config (~/.paramdeck/settings.yaml)
    4. Schema defaults
    """

    timing: TimingConfig = Field(default_factory=TimingConfig, description="Wait tuning")
    storage: StorageConfig = Field(default_factory=StorageConfig, description="Durable store")
    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging")
