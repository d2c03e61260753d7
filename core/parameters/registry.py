"""Parameter type registry: one handler per parameter kind.

Every handler converts host failures into ``False``/``None`` so batch
operations can carry on past a single failing parameter.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from core.target import LocalEntryOp, TabId, TargetCapabilities

from .types import ParameterType

logger = logging.getLogger(__name__)


# ============================================================================
# Address helpers
# ============================================================================


def _split(address: str):
    parts = urlsplit(address)
    if not parts.scheme:
        raise ValueError(f"Malformed address: {address!r}")
    return parts


def origin_of(address: str) -> str:
    parts = _split(address)
    if not parts.netloc:
        raise ValueError(f"Address has no origin: {address!r}")
    return f"{parts.scheme}://{parts.netloc}"


def query_value(address: str, key: str) -> str | None:
    """First value for ``key`` in the query string, or None when absent."""
    for k, v in parse_qsl(_split(address).query, keep_blank_values=True):
        if k == key:
            return v
    return None


def rewrite_query(
    address: str,
    set_values: Mapping[str, str] | None = None,
    delete_keys: Iterable[str] = (),
) -> str:
    """Return ``address`` with query keys set/deleted.

    Setting an existing key replaces its first occurrence in place and drops
    the rest; a new key is appended. Deletions run before sets.
    """
    parts = _split(address)
    pairs = parse_qsl(parts.query, keep_blank_values=True)
    doomed = set(delete_keys)
    pairs = [(k, v) for k, v in pairs if k not in doomed]

    for key, value in (set_values or {}).items():
        out: list[tuple[str, str]] = []
        placed = False
        for k, v in pairs:
            if k != key:
                out.append((k, v))
            elif not placed:
                out.append((key, value))
                placed = True
        if not placed:
            out.append((key, value))
        pairs = out

    return urlunsplit(parts._replace(query=urlencode(pairs)))


# ============================================================================
# Handlers
# ============================================================================


class ParameterHandler(ABC):
    """apply/remove/verify/current_value for one parameter kind."""

    kind: ParameterType

    def __init__(self, target: TargetCapabilities) -> None:
        self.target = target

    @abstractmethod
    async def apply(self, tab_id: TabId, key: str, value: str) -> bool:
        pass

    @abstractmethod
    async def remove(self, tab_id: TabId, key: str) -> bool:
        pass

    @abstractmethod
    async def current_value(self, tab_id: TabId, key: str) -> str | None:
        pass

    async def verify(self, tab_id: TabId, key: str, expected: str) -> bool:
        return await self.current_value(tab_id, key) == expected

    async def _address(self, tab_id: TabId) -> str | None:
        try:
            return await self.target.get_address(tab_id)
        except Exception as e:
            logger.error("Failed to read address of tab %s: %s", tab_id, e)
            return None


class QueryParameterHandler(ParameterHandler):
    kind = ParameterType.QUERY_PARAMETER

    async def apply(self, tab_id: TabId, key: str, value: str) -> bool:
        return await self.rewrite(tab_id, set_values={key: value})

    async def remove(self, tab_id: TabId, key: str) -> bool:
        address = await self._address(tab_id)
        if not address:
            return False
        try:
            if query_value(address, key) is None:
                return True
            await self.target.set_address(tab_id, rewrite_query(address, delete_keys=[key]))
            return True
        except Exception as e:
            logger.error("Failed to remove query param %s: %s", key, e)
            return False

    async def rewrite(
        self,
        tab_id: TabId,
        set_values: Mapping[str, str] | None = None,
        delete_keys: Iterable[str] = (),
    ) -> bool:
        """Apply every query change in a single navigation."""
        address = await self._address(tab_id)
        if not address:
            return False
        try:
            await self.target.set_address(tab_id, rewrite_query(address, set_values, delete_keys))
            return True
        except Exception as e:
            logger.error("Failed to update query params of tab %s: %s", tab_id, e)
            return False

    async def current_value(self, tab_id: TabId, key: str) -> str | None:
        address = await self._address(tab_id)
        if not address:
            return None
        try:
            return query_value(address, key)
        except ValueError:
            return None


class CookieHandler(ParameterHandler):
    kind = ParameterType.COOKIE

    async def _origin(self, tab_id: TabId) -> str | None:
        address = await self._address(tab_id)
        if not address:
            return None
        try:
            return origin_of(address)
        except ValueError as e:
            logger.error("Cannot scope cookie to tab %s: %s", tab_id, e)
            return None

    async def apply(self, tab_id: TabId, key: str, value: str) -> bool:
        origin = await self._origin(tab_id)
        if origin is None:
            return False
        try:
            await self.target.set_cookie(origin, key, value)
            return True
        except Exception as e:
            logger.error("Failed to apply cookie %s: %s", key, e)
            return False

    async def remove(self, tab_id: TabId, key: str) -> bool:
        origin = await self._origin(tab_id)
        if origin is None:
            return False
        try:
            await self.target.delete_cookie(origin, key)
            return True
        except Exception as e:
            logger.error("Failed to remove cookie %s: %s", key, e)
            return False

    async def current_value(self, tab_id: TabId, key: str) -> str | None:
        origin = await self._origin(tab_id)
        if origin is None:
            return None
        try:
            return await self.target.get_cookie(origin, key)
        except Exception:
            return None


class LocalEntryHandler(ParameterHandler):
    kind = ParameterType.LOCAL_ENTRY

    async def _run(self, tab_id: TabId, op: LocalEntryOp, key: str, value: str | None = None):
        try:
            return await self.target.run_local_entry_op(tab_id, op, key, value)
        except Exception as e:
            logger.error("Local storage %s for %s failed: %s", op.value, key, e)
            return None

    async def apply(self, tab_id: TabId, key: str, value: str) -> bool:
        result = await self._run(tab_id, LocalEntryOp.APPLY, key, value)
        return bool(result and result.success)

    async def remove(self, tab_id: TabId, key: str) -> bool:
        result = await self._run(tab_id, LocalEntryOp.REMOVE, key)
        return bool(result and result.success)

    async def current_value(self, tab_id: TabId, key: str) -> str | None:
        result = await self._run(tab_id, LocalEntryOp.GET, key)
        if result is None or not result.success:
            return None
        return result.value

    async def verify(self, tab_id: TabId, key: str, expected: str) -> bool:
        result = await self._run(tab_id, LocalEntryOp.GET, key)
        return bool(result and result.success and result.value == expected)


_HANDLER_CLASSES: dict[ParameterType, type[ParameterHandler]] = {
    ParameterType.QUERY_PARAMETER: QueryParameterHandler,
    ParameterType.COOKIE: CookieHandler,
    ParameterType.LOCAL_ENTRY: LocalEntryHandler,
}


class ParameterTypeRegistry:
    """Resolves a parameter kind to its handler, bound to one host."""

    def __init__(self, target: TargetCapabilities) -> None:
        self.target = target
        self._handlers = {kind: cls(target) for kind, cls in _HANDLER_CLASSES.items()}

    def handler_for(self, kind: ParameterType | str) -> ParameterHandler:
        return self._handlers[ParameterType(kind)]

    @property
    def query(self) -> QueryParameterHandler:
        return self._handlers[ParameterType.QUERY_PARAMETER]  # type: ignore[return-value]
