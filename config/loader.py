"""Settings loader with three-tier merge.

Configuration priority (highest to lowest):
1. CLI overrides
2. Project config (.paramdeck/settings.yaml in workspace)
3. User config (~/.paramdeck/settings.yaml)
4. Schema defaults
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from config.schema import ParamdeckSettings

logger = logging.getLogger(__name__)

SETTINGS_FILENAME = "settings.yaml"


class SettingsLoader:
    """Loads ParamdeckSettings from user/project YAML files."""

    def __init__(self, workspace_root: str | Path | None = None, home: str | Path | None = None):
        self.workspace_root = Path(workspace_root).resolve() if workspace_root else None
        self.home = Path(home) if home else Path.home()

    def load(self, cli_overrides: dict[str, Any] | None = None) -> ParamdeckSettings:
        user_config = self._load_user_config()
        project_config = self._load_project_config()

        merged = _merge(user_config, project_config)
        if cli_overrides:
            merged = _merge(merged, cli_overrides)
        return ParamdeckSettings(**_clean(merged))

    def _load_user_config(self) -> dict[str, Any]:
        """Load user config from ~/.paramdeck/settings.yaml."""
        return self._load_yaml(self.home / ".paramdeck" / SETTINGS_FILENAME)

    def _load_project_config(self) -> dict[str, Any]:
        """Load project config from .paramdeck/settings.yaml."""
        if not self.workspace_root:
            return {}
        return self._load_yaml(self.workspace_root / ".paramdeck" / SETTINGS_FILENAME)

    @staticmethod
    def _load_yaml(path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (yaml.YAMLError, OSError) as e:
            logger.warning("Ignoring unreadable settings file %s: %s", path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring settings file %s: expected a mapping", path)
            return {}
        return data


def load_settings(
    workspace_root: str | Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> ParamdeckSettings:
    """Convenience function to load settings."""
    return SettingsLoader(workspace_root=workspace_root).load(cli_overrides=cli_overrides)


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Layer ``override`` onto ``base`` group by group; None never overrides."""
    result = dict(base)
    for key, value in override.items():
        if value is None:
            continue
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _merge(result[key], value)
        else:
            result[key] = value
    return result


def _clean(settings: dict[str, Any]) -> dict[str, Any]:
    """Drop unset fields so schema defaults apply, and expand ${VAR} and ~ in strings."""
    cleaned: dict[str, Any] = {}
    for key, value in settings.items():
        if value is None:
            continue
        if isinstance(value, dict):
            value = _clean(value)
        elif isinstance(value, str):
            value = os.path.expandvars(os.path.expanduser(value))
        cleaned[key] = value
    return cleaned
