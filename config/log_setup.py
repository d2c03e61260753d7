"""Root logger setup."""

from __future__ import annotations

import logging

from config.schema import LoggingConfig

_configured = False


def configure_logging(config: LoggingConfig | None = None, *, force: bool = False) -> None:
    """Install one stream handler on the root logger; later calls are no-ops unless forced."""
    global _configured
    if _configured and not force:
        return
    config = config or LoggingConfig()
    logging.basicConfig(level=config.level, format=config.format, force=force)
    _configured = True
