"""Runtime wiring helpers for storage strategy selection."""

from __future__ import annotations

import importlib
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Callable, Literal

from storage.contracts import BaseKVStore
from storage.providers.memory import MemoryKVStore
from storage.providers.sqlite import SQLiteKVStore

StorageStrategy = Literal["sqlite", "memory", "custom"]

DEFAULT_DB_PATH = Path.home() / ".paramdeck" / "paramdeck.db"


def build_store(
    *,
    strategy: str | None = None,
    db_path: str | Path | None = None,
    store_factory: str | None = None,
    env: Mapping[str, str] | None = None,
) -> BaseKVStore:
    """Build the durable store from explicit args, falling back to environment."""
    env_map = env if env is not None else os.environ
    raw_strategy = strategy if strategy is not None else env_map.get("PARAMDECK_STORAGE_STRATEGY")
    resolved = _resolve_strategy(raw_strategy)

    if resolved == "memory":
        return MemoryKVStore()

    if resolved == "custom":
        factory_ref = store_factory if store_factory is not None else env_map.get("PARAMDECK_STORE_FACTORY")
        if not factory_ref:
            raise RuntimeError(
                "Custom storage strategy requires runtime config. "
                "Set PARAMDECK_STORE_FACTORY=<module>:<callable> or pass store_factory explicitly."
            )
        store = _load_factory(factory_ref)()
        _ensure_store(store)
        return store

    raw_path = db_path if db_path is not None else env_map.get("PARAMDECK_DB_PATH")
    return SQLiteKVStore(Path(raw_path).expanduser() if raw_path else DEFAULT_DB_PATH)


def _resolve_strategy(raw: str | None) -> StorageStrategy:
    value = (raw or "sqlite").strip().lower()
    if value in {"", "sqlite"}:
        return "sqlite"
    if value in {"memory", "custom"}:
        return value  # type: ignore[return-value]
    raise ValueError(
        f"Invalid PARAMDECK_STORAGE_STRATEGY value: {raw!r}. "
        "Supported values: sqlite, memory, custom."
    )


def _load_factory(factory_ref: str) -> Callable[[], Any]:
    module_name, sep, attr_name = factory_ref.partition(":")
    if not sep or not module_name or not attr_name:
        raise RuntimeError("Invalid PARAMDECK_STORE_FACTORY format. Expected '<module>:<callable>'.")

    try:
        module = importlib.import_module(module_name)
    except Exception as exc:
        raise RuntimeError(f"Failed to import store factory module {module_name!r}: {exc}") from exc

    try:
        factory = getattr(module, attr_name)
    except AttributeError as exc:
        raise RuntimeError(f"Store factory {factory_ref!r} is missing attribute {attr_name!r}.") from exc

    if not callable(factory):
        raise RuntimeError(f"Store factory {factory_ref!r} must be callable.")
    return factory


def _ensure_store(store: Any) -> None:
    if store is None:
        raise RuntimeError("Store factory returned None.")
    for name in ("get_synced", "set_synced", "get_local", "set_local", "subscribe"):
        if not callable(getattr(store, name, None)):
            raise RuntimeError(f"Store must expose a callable {name}() API. Check PARAMDECK_STORE_FACTORY output.")
