"""Preset activation state machine.

States per (tab, preset)::

    INACTIVE -> ACTIVATING -> ACTIVE -> DEACTIVATING -> INACTIVE
                    |                        |
                    +-> INACTIVE (rollback)  +-> ACTIVE (removal failed)

Activation records the preset as active *before* writing its parameters, so
any overlay computation running meanwhile treats them as live; a failed write
rolls the record back. Deactivation removes parameters *before* dropping the
record, and leaves the record in place if removal fails.

Transitions on one tab are serialized by a per-tab lock.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import StrEnum

from core.target import TabId

from .applicator import ParameterApplicator
from .storage import PresetRepo, tab_key

logger = logging.getLogger(__name__)


class PresetState(StrEnum):
    INACTIVE = "inactive"
    ACTIVATING = "activating"
    ACTIVE = "active"
    DEACTIVATING = "deactivating"


@dataclass(frozen=True)
class ToggleResult:
    active: bool
    success: bool


class PresetActivator:
    """togglePreset / activatePreset / deactivatePreset orchestration."""

    def __init__(self, repo: PresetRepo, applicator: ParameterApplicator) -> None:
        self.repo = repo
        self.applicator = applicator
        self._tab_locks: dict[str, asyncio.Lock] = {}
        self._in_flight: dict[tuple[str, str], PresetState] = {}

    def _lock_for(self, tab_id: TabId) -> asyncio.Lock:
        key = tab_key(tab_id)
        lock = self._tab_locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._tab_locks[key] = lock
        return lock

    async def state_of(self, tab_id: TabId, preset_id: str) -> PresetState:
        transient = self._in_flight.get((tab_key(tab_id), preset_id))
        if transient is not None:
            return transient
        if await self.repo.is_preset_active(tab_id, preset_id):
            return PresetState.ACTIVE
        return PresetState.INACTIVE

    async def activate_preset(self, tab_id: TabId, preset_id: str) -> bool:
        async with self._lock_for(tab_id):
            return await self._activate(tab_id, preset_id)

    async def deactivate_preset(self, tab_id: TabId, preset_id: str) -> bool:
        async with self._lock_for(tab_id):
            return await self._deactivate(tab_id, preset_id)

    async def toggle_preset(self, tab_id: TabId, preset_id: str) -> ToggleResult:
        async with self._lock_for(tab_id):
            if await self.repo.is_preset_active(tab_id, preset_id):
                success = await self._deactivate(tab_id, preset_id)
                return ToggleResult(active=not success, success=success)
            success = await self._activate(tab_id, preset_id)
            return ToggleResult(active=success, success=success)

    async def close_tab(self, tab_id: TabId) -> None:
        """Clear the tab's activation list after any in-flight transition, then drop its lock."""
        async with self._lock_for(tab_id):
            await self.repo.cleanup_tab_state(tab_id)
        self.forget_tab(tab_id)

    def forget_tab(self, tab_id: TabId) -> None:
        """Drop the lock of a closed tab if nothing holds it."""
        key = tab_key(tab_id)
        lock = self._tab_locks.get(key)
        if lock is not None and not lock.locked():
            del self._tab_locks[key]

    # ------------------------------------------------------------------
    # Transitions (caller holds the tab lock)
    # ------------------------------------------------------------------

    async def _activate(self, tab_id: TabId, preset_id: str) -> bool:
        if await self.repo.is_preset_active(tab_id, preset_id):
            return True

        preset = await self.repo.get_preset(preset_id)
        if preset is None:
            logger.warning("Preset not found: %s", preset_id)
            return False

        slot = (tab_key(tab_id), preset_id)
        self._in_flight[slot] = PresetState.ACTIVATING
        try:
            await self.repo.add_active_preset(tab_id, preset_id)
            success = await self.applicator.apply_preset(tab_id, preset)
            if not success:
                logger.warning("Applying preset %s to tab %s failed, rolling back", preset_id, tab_id)
                await self.repo.remove_active_preset(tab_id, preset_id)
            return success
        finally:
            del self._in_flight[slot]

    async def _deactivate(self, tab_id: TabId, preset_id: str) -> bool:
        if not await self.repo.is_preset_active(tab_id, preset_id):
            return True

        preset = await self.repo.get_preset(preset_id)
        if preset is None:
            logger.warning("Active preset %s no longer exists, dropping it from tab %s", preset_id, tab_id)
            await self.repo.remove_active_preset(tab_id, preset_id)
            return True

        slot = (tab_key(tab_id), preset_id)
        self._in_flight[slot] = PresetState.DEACTIVATING
        try:
            success = await self.applicator.remove_preset(tab_id, preset)
            if success:
                await self.repo.remove_active_preset(tab_id, preset_id)
            else:
                logger.warning("Removing preset %s from tab %s failed, keeping it active", preset_id, tab_id)
            return success
        finally:
            del self._in_flight[slot]
