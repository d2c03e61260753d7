"""Durable key-value store contract.

Two scopes mirror the browser storage areas the engine was built against:

- ``sync``: preset definitions, shared across devices
- ``local``: per-device state such as per-tab activation lists
"""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Literal, Protocol

logger = logging.getLogger(__name__)

StorageScope = Literal["sync", "local"]
SCOPES: tuple[StorageScope, ...] = ("sync", "local")


@dataclass(frozen=True)
class StorageChange:
    """Old/new value pair for one key, as delivered to subscribers."""

    old_value: Any = None
    new_value: Any = None


ChangeCallback = Callable[[dict[str, StorageChange]], None]
Unsubscribe = Callable[[], None]


class DurableStore(Protocol):
    """Get/set/subscribe contract consumed by the parameter engine."""

    async def get_synced(self, keys: Iterable[str]) -> dict[str, Any]:
        """Read keys from the synced scope. Missing keys are omitted."""

    async def set_synced(self, values: Mapping[str, Any]) -> None:
        """Write keys to the synced scope."""

    async def get_local(self, keys: Iterable[str]) -> dict[str, Any]:
        """Read keys from the local scope. Missing keys are omitted."""

    async def set_local(self, values: Mapping[str, Any]) -> None:
        """Write keys to the local scope."""

    def subscribe(self, scope: StorageScope, callback: ChangeCallback) -> Unsubscribe:
        """Register a change listener for one scope."""

    async def close(self) -> None:
        """Release provider resources."""


class BaseKVStore(ABC):
    """Shared scope plumbing and listener fan-out for store providers.

    Providers implement ``_read``/``_write``; values cross the boundary as
    deep copies so callers never hold a reference into stored data.
    """

    def __init__(self) -> None:
        self._listeners: dict[StorageScope, list[ChangeCallback]] = {scope: [] for scope in SCOPES}

    @abstractmethod
    async def _read(self, scope: StorageScope, keys: list[str]) -> dict[str, Any]:
        """Return stored values for the given keys."""

    @abstractmethod
    async def _write(self, scope: StorageScope, values: dict[str, Any]) -> dict[str, StorageChange]:
        """Persist values and return the per-key changes."""

    async def close(self) -> None:
        return None

    async def get_synced(self, keys: Iterable[str]) -> dict[str, Any]:
        return await self.get("sync", keys)

    async def set_synced(self, values: Mapping[str, Any]) -> None:
        await self.set("sync", values)

    async def get_local(self, keys: Iterable[str]) -> dict[str, Any]:
        return await self.get("local", keys)

    async def set_local(self, values: Mapping[str, Any]) -> None:
        await self.set("local", values)

    async def get(self, scope: StorageScope, keys: Iterable[str]) -> dict[str, Any]:
        _check_scope(scope)
        return copy.deepcopy(await self._read(scope, list(keys)))

    async def set(self, scope: StorageScope, values: Mapping[str, Any]) -> None:
        _check_scope(scope)
        if not values:
            return
        changes = await self._write(scope, copy.deepcopy(dict(values)))
        self._notify(scope, changes)

    def subscribe(self, scope: StorageScope, callback: ChangeCallback) -> Unsubscribe:
        _check_scope(scope)
        self._listeners[scope].append(callback)

        def unsubscribe() -> None:
            try:
                self._listeners[scope].remove(callback)
            except ValueError:
                pass

        return unsubscribe

    def _notify(self, scope: StorageScope, changes: dict[str, StorageChange]) -> None:
        if not changes:
            return
        for callback in list(self._listeners[scope]):
            try:
                callback(copy.deepcopy(changes))
            except Exception:
                # A broken listener must not undo a committed write.
                logger.exception("Storage listener failed for scope %s", scope)


def _check_scope(scope: str) -> None:
    if scope not in SCOPES:
        raise ValueError(f"Unknown storage scope: {scope}. Supported scopes: {', '.join(SCOPES)}")
