"""Parameter applicator - applies and removes parameters on a tab.

Query parameters of one operation are merged into a single navigation; the
applicator then waits for the navigation to settle before writing cookies and
local entries, which survive the reload. Sub-steps are best effort: a failure
marks the operation unsuccessful but never stops the remaining writes.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from core.target import TabId

from .overlay import RemovalPlan, effective_parameters, plan_removal
from .registry import ParameterTypeRegistry
from .storage import PresetRepo
from .timing import Waiter, WaitReason
from .types import Parameter, ParameterType, Preset

logger = logging.getLogger(__name__)

BOOLEAN_OFF = "false"


@dataclass
class ParameterVerification:
    parameter: Parameter
    verified: bool


@dataclass
class PresetVerification:
    all_verified: bool
    results: list[ParameterVerification] = field(default_factory=list)


class ParameterApplicator:
    """Applies presets to a tab through the type registry."""

    def __init__(
        self,
        registry: ParameterTypeRegistry,
        repo: PresetRepo,
        waiter: Waiter | None = None,
    ) -> None:
        self.registry = registry
        self.repo = repo
        self.waiter = waiter or Waiter()

    # ------------------------------------------------------------------
    # Single parameters
    # ------------------------------------------------------------------

    async def apply_parameter(self, tab_id: TabId, parameter: Parameter) -> bool:
        handler = self.registry.handler_for(parameter.type)
        return await handler.apply(tab_id, parameter.key, parameter.value)

    async def remove_parameter(self, tab_id: TabId, parameter: Parameter) -> bool:
        """Remove a parameter; boolean parameters are forced to "false" instead."""
        handler = self.registry.handler_for(parameter.type)
        if parameter.is_boolean:
            return await handler.apply(tab_id, parameter.key, BOOLEAN_OFF)
        return await handler.remove(tab_id, parameter.key)

    async def current_value(self, tab_id: TabId, parameter: Parameter) -> str | None:
        return await self.registry.handler_for(parameter.type).current_value(tab_id, parameter.key)

    async def verify_parameter(self, tab_id: TabId, parameter: Parameter) -> bool:
        handler = self.registry.handler_for(parameter.type)
        return await handler.verify(tab_id, parameter.key, parameter.value)

    async def sync_parameter(self, tab_id: TabId, parameter: Parameter) -> bool:
        """Apply and verify, retrying once after a propagation wait."""
        if not await self.apply_parameter(tab_id, parameter):
            return False
        if await self.verify_parameter(tab_id, parameter):
            return True

        logger.warning("Parameter %s verification failed, retrying...", parameter.key)
        if not await self.apply_parameter(tab_id, parameter):
            return False
        await self.waiter.wait(WaitReason.PROPAGATION)
        return await self.verify_parameter(tab_id, parameter)

    # ------------------------------------------------------------------
    # Whole presets
    # ------------------------------------------------------------------

    async def apply_preset(self, tab_id: TabId, preset: Preset) -> bool:
        query_values: dict[str, str] = {}
        for param in preset.parameters:
            if param.type == ParameterType.QUERY_PARAMETER:
                query_values[param.key] = param.value

        success = True
        if query_values:
            success = await self._navigate(tab_id, set_values=query_values)

        for kind in (ParameterType.COOKIE, ParameterType.LOCAL_ENTRY):
            for param in preset.parameters:
                if param.type == kind and not await self.apply_parameter(tab_id, param):
                    success = False

        return success

    async def remove_preset(self, tab_id: TabId, preset: Preset) -> bool:
        """Remove a preset's parameters, reverting keys other active presets still define."""
        logger.info("Removing preset %s (%s) from tab %s", preset.name, preset.id, tab_id)
        other_active = await self._other_active_presets(tab_id, preset.id)
        plan = plan_removal(preset, other_active)
        logger.debug(
            "Params to remove: %d, to revert: %d, unchanged: %d",
            len(plan.remove),
            len(plan.revert),
            len(plan.keep),
        )
        return await self.execute_removal(tab_id, plan)

    async def execute_removal(self, tab_id: TabId, plan: RemovalPlan) -> bool:
        success = True

        query_remove, query_revert = plan.of_kind(ParameterType.QUERY_PARAMETER)
        if query_remove or query_revert:
            set_values: dict[str, str] = {}
            delete_keys: list[str] = []
            for param in query_remove:
                if param.is_boolean:
                    set_values[param.key] = BOOLEAN_OFF
                else:
                    delete_keys.append(param.key)
            for param in query_revert:
                set_values[param.key] = param.value
            if not await self._navigate(tab_id, set_values=set_values, delete_keys=delete_keys):
                success = False

        for kind in (ParameterType.COOKIE, ParameterType.LOCAL_ENTRY):
            to_remove, to_revert = plan.of_kind(kind)
            for param in to_remove:
                if not await self.remove_parameter(tab_id, param):
                    success = False
            for param in to_revert:
                if not await self.apply_parameter(tab_id, param):
                    success = False

        return success

    async def verify_preset(self, tab_id: TabId, preset: Preset) -> PresetVerification:
        """Verify the value each (kind, key) of the preset should have; shadowed duplicates are skipped."""
        params = effective_parameters(preset)
        verdicts = await asyncio.gather(*(self.verify_parameter(tab_id, param) for param in params))
        results = [
            ParameterVerification(parameter=param, verified=verified)
            for param, verified in zip(params, verdicts)
        ]
        return PresetVerification(all_verified=all(verdicts), results=results)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _navigate(
        self,
        tab_id: TabId,
        set_values: dict[str, str] | None = None,
        delete_keys: list[str] | None = None,
    ) -> bool:
        ok = await self.registry.query.rewrite(tab_id, set_values=set_values, delete_keys=delete_keys or ())
        if ok:
            await self.waiter.wait(WaitReason.NAVIGATION_SETTLE)
        return ok

    async def _other_active_presets(self, tab_id: TabId, preset_id: str) -> list[Preset]:
        active_ids = [pid for pid in await self.repo.get_active_preset_ids(tab_id) if pid != preset_id]
        by_id = {p.id: p for p in await self.repo.get_presets()}
        return [by_id[pid] for pid in active_ids if pid in by_id]
