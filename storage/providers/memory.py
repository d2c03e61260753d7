"""In-memory store provider for tests and ephemeral sessions."""

from __future__ import annotations

from typing import Any

from storage.contracts import SCOPES, BaseKVStore, StorageChange, StorageScope


class MemoryKVStore(BaseKVStore):
    def __init__(self, initial: dict[StorageScope, dict[str, Any]] | None = None) -> None:
        super().__init__()
        self._data: dict[StorageScope, dict[str, Any]] = {scope: {} for scope in SCOPES}
        for scope, values in (initial or {}).items():
            self._data[scope].update(values)

    async def _read(self, scope: StorageScope, keys: list[str]) -> dict[str, Any]:
        bucket = self._data[scope]
        return {key: bucket[key] for key in keys if key in bucket}

    async def _write(self, scope: StorageScope, values: dict[str, Any]) -> dict[str, StorageChange]:
        bucket = self._data[scope]
        changes: dict[str, StorageChange] = {}
        for key, value in values.items():
            changes[key] = StorageChange(old_value=bucket.get(key), new_value=value)
            bucket[key] = value
        return changes

    def snapshot(self, scope: StorageScope) -> dict[str, Any]:
        """Raw view of one scope (tests only; not a copy)."""
        return self._data[scope]
