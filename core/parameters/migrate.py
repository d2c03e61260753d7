"""Legacy preset migration.

Presets saved before parameters carried a primitive type get one backfilled:
a stored value of ``"true"`` marks a toggle (boolean), anything else is a
plain string. Already-typed parameters are left alone, so running the
migration again changes nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .storage import PresetRepo
from .types import Parameter, Preset, PrimitiveType

logger = logging.getLogger(__name__)


def infer_primitive_type(value: str) -> PrimitiveType:
    return PrimitiveType.BOOLEAN if value == "true" else PrimitiveType.STRING


def migrate_parameter(parameter: Parameter) -> Parameter:
    if parameter.primitive_type is not None:
        return parameter
    return parameter.model_copy(update={"primitive_type": infer_primitive_type(parameter.value)})


def migrate_presets(presets: Iterable[Preset]) -> tuple[list[Preset], int]:
    """Return migrated copies and the number of parameters that changed."""
    migrated: list[Preset] = []
    changed = 0
    for preset in presets:
        params: list[Parameter] = []
        for param in preset.parameters:
            new_param = migrate_parameter(param)
            if new_param is not param:
                changed += 1
            params.append(new_param)
        migrated.append(preset.model_copy(update={"parameters": params}))
    return migrated, changed


async def migrate_presets_if_needed(repo: PresetRepo) -> int:
    """Migrate stored presets in place; writes only when something changed."""
    presets, changed = migrate_presets(await repo.get_presets())
    if changed:
        await repo.save_presets(presets)
        logger.info("Backfilled primitive type on %d parameters", changed)
    return changed
