"""Preset and tab-activation persistence over the durable store.

Presets live in the synced scope under ``presets``; per-tab activation lists
live in the local scope under ``tabPresetStates``. A tab with no active
presets has no key at all.

Each document is rewritten whole, so every read-modify-write runs under that
document's lock.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable

from pydantic import ValidationError

from core.target import TabId
from storage.contracts import DurableStore, StorageChange, Unsubscribe

from .types import Parameter, Preset, now_ms

logger = logging.getLogger(__name__)

PRESETS_KEY = "presets"
TAB_PRESET_STATES_KEY = "tabPresetStates"

TabStates = dict[str, list[str]]


def tab_key(tab_id: TabId) -> str:
    return str(tab_id)


class PresetRepo:
    """Read-modify-write helpers for the two persisted documents."""

    def __init__(self, store: DurableStore) -> None:
        self._store = store
        self._presets_lock = asyncio.Lock()
        self._states_lock = asyncio.Lock()

    @property
    def store(self) -> DurableStore:
        return self._store

    # ------------------------------------------------------------------
    # Presets (synced scope)
    # ------------------------------------------------------------------

    async def get_presets(self) -> list[Preset]:
        result = await self._store.get_synced([PRESETS_KEY])
        return _parse_presets(result.get(PRESETS_KEY) or [])

    async def save_presets(self, presets: Iterable[Preset]) -> None:
        async with self._presets_lock:
            await self._write_presets(presets)

    async def _write_presets(self, presets: Iterable[Preset]) -> None:
        await self._store.set_synced({PRESETS_KEY: [p.to_storage() for p in presets]})

    async def get_preset(self, preset_id: str) -> Preset | None:
        return _find(await self.get_presets(), preset_id)

    async def add_preset(self, preset: Preset) -> Preset:
        stamp = now_ms()
        stored = preset.model_copy(update={"created_at": stamp, "updated_at": stamp}, deep=True)
        async with self._presets_lock:
            presets = await self.get_presets()
            presets.append(stored)
            await self._write_presets(presets)
        return stored

    async def add_presets(self, new_presets: Iterable[Preset], replace: bool = False) -> None:
        async with self._presets_lock:
            presets = [] if replace else await self.get_presets()
            presets.extend(new_presets)
            await self._write_presets(presets)

    async def update_preset(self, preset_id: str, **updates) -> Preset | None:
        updates.pop("id", None)
        async with self._presets_lock:
            presets = await self.get_presets()
            for index, preset in enumerate(presets):
                if preset.id == preset_id:
                    updates["updated_at"] = now_ms()
                    presets[index] = Preset.model_validate({**preset.model_dump(), **updates})
                    await self._write_presets(presets)
                    return presets[index]
        return None

    async def delete_preset(self, preset_id: str) -> bool:
        async with self._presets_lock:
            presets = await self.get_presets()
            remaining = [p for p in presets if p.id != preset_id]
            if len(remaining) == len(presets):
                return False
            await self._write_presets(remaining)

        def drop(states: TabStates) -> TabStates:
            cleaned: TabStates = {}
            for tab, preset_ids in states.items():
                kept = [pid for pid in preset_ids if pid != preset_id]
                if kept:
                    cleaned[tab] = kept
            return cleaned

        await self._mutate_tab_states(drop)
        return True

    async def add_parameter(self, preset_id: str, parameter: Parameter) -> bool:
        async with self._presets_lock:
            presets = await self.get_presets()
            preset = _find(presets, preset_id)
            if preset is None:
                return False
            preset.parameters.append(parameter.model_copy(deep=True))
            preset.updated_at = now_ms()
            await self._write_presets(presets)
            return True

    async def update_parameter(self, preset_id: str, parameter_id: str, **updates) -> Parameter | None:
        updates.pop("id", None)
        async with self._presets_lock:
            presets = await self.get_presets()
            preset = _find(presets, preset_id)
            if preset is None:
                return None
            for index, param in enumerate(preset.parameters):
                if param.id == parameter_id:
                    preset.parameters[index] = Parameter.model_validate({**param.model_dump(), **updates})
                    preset.updated_at = now_ms()
                    await self._write_presets(presets)
                    return preset.parameters[index]
        return None

    async def remove_parameter(self, preset_id: str, parameter_id: str) -> bool:
        async with self._presets_lock:
            presets = await self.get_presets()
            preset = _find(presets, preset_id)
            if preset is None:
                return False
            preset.parameters = [p for p in preset.parameters if p.id != parameter_id]
            preset.updated_at = now_ms()
            await self._write_presets(presets)
            return True

    # ------------------------------------------------------------------
    # Tab activation state (local scope)
    # ------------------------------------------------------------------

    async def get_tab_states(self) -> TabStates:
        result = await self._store.get_local([TAB_PRESET_STATES_KEY])
        raw = result.get(TAB_PRESET_STATES_KEY) or {}
        return {str(tab): list(ids) for tab, ids in raw.items() if ids}

    async def save_tab_states(self, states: TabStates) -> None:
        async with self._states_lock:
            await self._store.set_local({TAB_PRESET_STATES_KEY: _compact(states)})

    async def _mutate_tab_states(self, mutate: Callable[[TabStates], TabStates]) -> TabStates:
        async with self._states_lock:
            states = _compact(mutate(await self.get_tab_states()))
            await self._store.set_local({TAB_PRESET_STATES_KEY: states})
            return states

    async def get_active_preset_ids(self, tab_id: TabId) -> list[str]:
        states = await self.get_tab_states()
        return states.get(tab_key(tab_id), [])

    async def set_active_preset_ids(self, tab_id: TabId, preset_ids: list[str]) -> None:
        def replace(states: TabStates) -> TabStates:
            states[tab_key(tab_id)] = list(preset_ids)
            return states

        await self._mutate_tab_states(replace)

    async def add_active_preset(self, tab_id: TabId, preset_id: str) -> None:
        def append(states: TabStates) -> TabStates:
            active = states.setdefault(tab_key(tab_id), [])
            if preset_id not in active:
                active.append(preset_id)
            return states

        await self._mutate_tab_states(append)

    async def remove_active_preset(self, tab_id: TabId, preset_id: str) -> None:
        def drop(states: TabStates) -> TabStates:
            key = tab_key(tab_id)
            states[key] = [pid for pid in states.get(key, []) if pid != preset_id]
            return states

        await self._mutate_tab_states(drop)

    async def is_preset_active(self, tab_id: TabId, preset_id: str) -> bool:
        return preset_id in await self.get_active_preset_ids(tab_id)

    async def cleanup_tab_state(self, tab_id: TabId) -> None:
        def drop(states: TabStates) -> TabStates:
            states.pop(tab_key(tab_id), None)
            return states

        await self._mutate_tab_states(drop)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def on_presets_changed(self, callback: Callable[[list[Preset]], None]) -> Unsubscribe:
        def listener(changes: dict[str, StorageChange]) -> None:
            if PRESETS_KEY in changes:
                callback(_parse_presets(changes[PRESETS_KEY].new_value or []))

        return self._store.subscribe("sync", listener)

    def on_tab_states_changed(self, callback: Callable[[TabStates], None]) -> Unsubscribe:
        def listener(changes: dict[str, StorageChange]) -> None:
            if TAB_PRESET_STATES_KEY in changes:
                callback(dict(changes[TAB_PRESET_STATES_KEY].new_value or {}))

        return self._store.subscribe("local", listener)


def _find(presets: list[Preset], preset_id: str) -> Preset | None:
    return next((p for p in presets if p.id == preset_id), None)


def _compact(states: TabStates) -> TabStates:
    return {tab: ids for tab, ids in states.items() if ids}


def _parse_presets(raw: list) -> list[Preset]:
    presets: list[Preset] = []
    for item in raw:
        try:
            presets.append(Preset.model_validate(item))
        except ValidationError as e:
            logger.warning("Skipping unreadable stored preset: %s", e)
    return presets
