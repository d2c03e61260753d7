"""Composition root for the parameter engine.

Wires repo, type registry, applicator and activator for one host, and exposes
the id-based operations the message layer calls.
"""

from __future__ import annotations

import logging

from config.schema import ParamdeckSettings
from core.target import TabId, TargetCapabilities
from storage.contracts import DurableStore
from storage.runtime import build_store

from .activation import PresetActivator, ToggleResult
from .applicator import ParameterApplicator, PresetVerification
from .manager import PresetManager
from .migrate import migrate_presets_if_needed
from .registry import ParameterTypeRegistry
from .storage import PresetRepo
from .timing import Waiter
from .types import Parameter

logger = logging.getLogger(__name__)


class ParameterEngine:
    def __init__(
        self,
        store: DurableStore,
        target: TargetCapabilities,
        waiter: Waiter | None = None,
    ) -> None:
        self.store = store
        self.target = target
        self.repo = PresetRepo(store)
        self.registry = ParameterTypeRegistry(target)
        self.applicator = ParameterApplicator(self.registry, self.repo, waiter or Waiter())
        self.activator = PresetActivator(self.repo, self.applicator)
        self.presets = PresetManager(self.repo)

    @classmethod
    def from_settings(
        cls,
        settings: ParamdeckSettings,
        target: TargetCapabilities,
        store: DurableStore | None = None,
    ) -> ParameterEngine:
        if store is None:
            store = build_store(
                strategy=settings.storage.strategy,
                db_path=settings.storage.db_path,
                store_factory=settings.storage.store_factory,
            )
        return cls(store, target, Waiter.from_config(settings.timing))

    async def startup(self) -> int:
        """Run one-time data migrations. Returns the number of migrated parameters."""
        return await migrate_presets_if_needed(self.repo)

    async def close(self) -> None:
        await self.store.close()

    # ------------------------------------------------------------------
    # Activation
    # ------------------------------------------------------------------

    async def toggle_preset(self, tab_id: TabId, preset_id: str) -> ToggleResult:
        return await self.activator.toggle_preset(tab_id, preset_id)

    async def activate_preset(self, tab_id: TabId, preset_id: str) -> bool:
        return await self.activator.activate_preset(tab_id, preset_id)

    async def deactivate_preset(self, tab_id: TabId, preset_id: str) -> bool:
        return await self.activator.deactivate_preset(tab_id, preset_id)

    async def active_preset_ids(self, tab_id: TabId) -> list[str]:
        return await self.repo.get_active_preset_ids(tab_id)

    async def tab_closed(self, tab_id: TabId) -> None:
        await self.activator.close_tab(tab_id)

    # ------------------------------------------------------------------
    # Direct application (no activation bookkeeping)
    # ------------------------------------------------------------------

    async def apply_preset(self, tab_id: TabId, preset_id: str) -> bool:
        preset = await self.repo.get_preset(preset_id)
        if preset is None:
            logger.warning("Preset not found: %s", preset_id)
            return False
        return await self.applicator.apply_preset(tab_id, preset)

    async def remove_preset(self, tab_id: TabId, preset_id: str) -> bool:
        preset = await self.repo.get_preset(preset_id)
        if preset is None:
            logger.warning("Preset not found: %s", preset_id)
            return False
        return await self.applicator.remove_preset(tab_id, preset)

    async def verify_preset(self, tab_id: TabId, preset_id: str) -> PresetVerification:
        preset = await self.repo.get_preset(preset_id)
        if preset is None:
            logger.warning("Preset not found for verification: %s", preset_id)
            return PresetVerification(all_verified=False, results=[])
        return await self.applicator.verify_preset(tab_id, preset)

    async def sync_parameter(self, tab_id: TabId, parameter: Parameter) -> bool:
        return await self.applicator.sync_parameter(tab_id, parameter)
