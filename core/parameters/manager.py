"""High-level preset operations: CRUD, duplication, reordering, import/export.

Operations on ids that no longer exist are silent no-ops returning ``None``
or ``False``; concurrent deletion is an expected race, not an error.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

from core.target import TabId

from .coder import PresetCoder
from .migrate import migrate_parameter
from .storage import PresetRepo
from .types import Parameter, ParameterType, Preset, PresetView, PrimitiveType, generate_id

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    imported: int = 0
    errors: list[str] = field(default_factory=list)


class ImportedParameter(BaseModel):
    """Lenient shape of a parameter inside an import file."""

    model_config = ConfigDict(populate_by_name=True)

    type: ParameterType = ParameterType.QUERY_PARAMETER
    key: str = ""
    value: str = ""
    description: str | None = None
    primitive_type: PrimitiveType | None = Field(None, alias="primitiveType")

    @field_validator("key", "value", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> Any:
        if v is None:
            return ""
        if isinstance(v, bool):
            return "true" if v else "false"
        if isinstance(v, (int, float)):
            return str(v)
        return v

    def to_parameter(self) -> Parameter:
        return migrate_parameter(
            Parameter(
                type=self.type,
                key=self.key,
                value=self.value,
                description=self.description,
                primitive_type=self.primitive_type,
            )
        )


class ImportedPreset(BaseModel):
    id: str | None = None
    name: str = Field(..., min_length=1)
    description: str | None = None
    parameters: list[ImportedParameter]

    @field_validator("id", "name", "description", mode="before")
    @classmethod
    def stringify(cls, v: Any, info: ValidationInfo) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        if info.field_name != "name" and not isinstance(v, str):
            # unusable id/description is treated as absent; a missing id is regenerated
            return None
        return v


class PresetManager:
    """CRUD surface used by the UI/message layer."""

    def __init__(self, repo: PresetRepo) -> None:
        self.repo = repo

    # ------------------------------------------------------------------
    # Presets
    # ------------------------------------------------------------------

    async def list_presets(self) -> list[Preset]:
        return await self.repo.get_presets()

    async def get_preset(self, preset_id: str) -> Preset | None:
        return await self.repo.get_preset(preset_id)

    async def create_preset(
        self,
        name: str,
        description: str | None = None,
        parameters: list[Parameter | dict[str, Any]] | None = None,
    ) -> Preset:
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Preset name is required")
        preset = Preset(
            name=name,
            description=description,
            parameters=[Parameter.model_validate(p) for p in parameters or []],
        )
        return await self.repo.add_preset(preset)

    async def update_preset(self, preset_id: str, **updates: Any) -> Preset | None:
        return await self.repo.update_preset(preset_id, **updates)

    async def delete_preset(self, preset_id: str) -> bool:
        """Delete a preset and drop it from every tab's activation list."""
        return await self.repo.delete_preset(preset_id)

    async def duplicate_preset(self, preset_id: str, new_name: str | None = None) -> Preset | None:
        original = await self.repo.get_preset(preset_id)
        if original is None:
            return None
        duplicate = Preset(
            name=new_name or f"{original.name} (Copy)",
            description=original.description,
            parameters=[p.model_copy(update={"id": generate_id()}) for p in original.parameters],
        )
        return await self.repo.add_preset(duplicate)

    async def reorder_parameters(self, preset_id: str, parameter_ids: list[str]) -> Preset | None:
        """Reorder by id; ids not in the preset are ignored, omitted parameters dropped."""
        preset = await self.repo.get_preset(preset_id)
        if preset is None:
            return None
        by_id = {p.id: p for p in preset.parameters}
        reordered = [by_id[pid] for pid in parameter_ids if pid in by_id]
        return await self.repo.update_preset(preset_id, parameters=reordered)

    async def get_presets_with_active_state(self, tab_id: TabId) -> list[PresetView]:
        presets = await self.repo.get_presets()
        active = set(await self.repo.get_active_preset_ids(tab_id))
        return [PresetView(preset=p, is_active=p.id in active) for p in presets]

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------

    async def add_parameter_to_preset(
        self,
        preset_id: str,
        type: ParameterType | str = ParameterType.QUERY_PARAMETER,
        key: str = "",
        value: str = "",
        description: str | None = None,
        primitive_type: PrimitiveType | str | None = None,
    ) -> Parameter | None:
        parameter = Parameter(
            type=type,
            key=key,
            value=value,
            description=description,
            primitive_type=primitive_type,
        )
        if not await self.repo.add_parameter(preset_id, parameter):
            return None
        return parameter

    async def update_parameter_in_preset(self, preset_id: str, parameter_id: str, **updates: Any) -> Parameter | None:
        return await self.repo.update_parameter(preset_id, parameter_id, **updates)

    async def remove_parameter_from_preset(self, preset_id: str, parameter_id: str) -> bool:
        return await self.repo.remove_parameter(preset_id, parameter_id)

    # ------------------------------------------------------------------
    # Import / export
    # ------------------------------------------------------------------

    async def export_presets(self) -> str:
        presets = await self.repo.get_presets()
        return json.dumps([p.to_storage() for p in presets], indent=2, ensure_ascii=False)

    async def import_presets(self, raw_json: str, merge: bool = True) -> ImportResult:
        """Import a JSON array of presets.

        Invalid items are skipped and reported; valid ones are committed.
        ``merge=False`` replaces every stored preset.
        """
        try:
            data = json.loads(raw_json)
        except (TypeError, ValueError) as e:
            return ImportResult(errors=[f"Failed to parse JSON: {e}"])

        if not isinstance(data, list):
            return ImportResult(errors=["Invalid format: expected an array"])

        result = ImportResult()
        existing_ids = {p.id for p in await self.repo.get_presets()} if merge else set()
        accepted: list[Preset] = []

        for item in data:
            if not _looks_like_preset(item):
                result.errors.append(f"Invalid preset: {json.dumps(item, ensure_ascii=False)[:50]}...")
                continue
            try:
                imported = ImportedPreset.model_validate(item)
            except ValidationError as e:
                result.errors.append(f"Failed to import preset: {e}")
                continue

            preset_id = imported.id if imported.id and imported.id not in existing_ids else generate_id()
            accepted.append(
                Preset(
                    id=preset_id,
                    name=imported.name,
                    description=imported.description,
                    parameters=[p.to_parameter() for p in imported.parameters],
                )
            )
            existing_ids.add(preset_id)
            result.imported += 1

        await self.repo.add_presets(accepted, replace=not merge)
        logger.info("Imported %d presets (%d skipped)", result.imported, len(result.errors))
        return result

    async def export_share(self, preset_ids: list[str] | None = None) -> str:
        presets = await self.repo.get_presets()
        if preset_ids is not None:
            wanted = set(preset_ids)
            presets = [p for p in presets if p.id in wanted]
        return PresetCoder.compress(presets)

    async def import_share(self, encoded: str) -> list[Preset]:
        """Decode a share string and append its presets. Raises ValueError on bad input."""
        decoded = PresetCoder.decompress(encoded)
        await self.repo.add_presets(decoded.result)
        return decoded.result


def _looks_like_preset(item: Any) -> bool:
    return isinstance(item, dict) and bool(item.get("name")) and isinstance(item.get("parameters"), list)
