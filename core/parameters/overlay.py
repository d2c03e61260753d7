"""Overlay resolution across simultaneously active presets.

Activation lists are append-ordered, so scanning them from the back gives
"most recently activated preset wins" with no timestamps involved.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from .types import Parameter, ParameterType, Preset


def get_effective_value(kind: ParameterType, key: str, presets: Sequence[Preset]) -> str | None:
    """Value of (kind, key) across ``presets``, or None if none defines it."""
    for preset in reversed(presets):
        for param in reversed(preset.parameters):
            if param.type == kind and param.key == key:
                return param.value
    return None


def effective_parameters(preset: Preset) -> list[Parameter]:
    """One parameter per (kind, key), the last listed winning, in first-seen order."""
    chosen: dict[tuple[ParameterType, str], Parameter] = {}
    for param in preset.parameters:
        chosen[(param.type, param.key)] = param
    return list(chosen.values())


@dataclass
class RemovalPlan:
    """What deactivating one preset has to do to the target."""

    remove: list[Parameter] = field(default_factory=list)
    revert: list[Parameter] = field(default_factory=list)
    keep: list[Parameter] = field(default_factory=list)

    def of_kind(self, kind: ParameterType) -> tuple[list[Parameter], list[Parameter]]:
        return (
            [p for p in self.remove if p.type == kind],
            [p for p in self.revert if p.type == kind],
        )


def plan_removal(preset: Preset, other_active: Sequence[Preset]) -> RemovalPlan:
    """Split ``preset``'s parameters into remove / revert / keep.

    ``other_active`` must already exclude ``preset`` itself. Reverted
    parameters are copies carrying the value that stays in effect.
    """
    plan = RemovalPlan()
    for param in effective_parameters(preset):
        effective = get_effective_value(param.type, param.key, other_active)
        if effective is None:
            plan.remove.append(param)
        elif effective == param.value:
            plan.keep.append(param)
        else:
            plan.revert.append(param.model_copy(update={"value": effective}))
    return plan
