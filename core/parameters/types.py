"""Parameter and preset models.

Attributes are snake_case in Python; the persisted and exported layout uses
the camelCase aliases (``primitiveType``, ``createdAt``, ``updatedAt``).
"""

from __future__ import annotations

import secrets
import time
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class ParameterType(StrEnum):
    """How a parameter reaches the page. Values are the persisted wire names."""

    QUERY_PARAMETER = "queryParam"
    COOKIE = "cookie"
    LOCAL_ENTRY = "localStorage"


class PrimitiveType(StrEnum):
    STRING = "string"
    BOOLEAN = "boolean"


PARAMETER_TYPE_LABELS: dict[ParameterType, str] = {
    ParameterType.QUERY_PARAMETER: "Query Parameter",
    ParameterType.COOKIE: "Cookie",
    ParameterType.LOCAL_ENTRY: "Local Storage",
}


def generate_id() -> str:
    """Opaque id: millisecond timestamp plus a short random suffix."""
    return f"{now_ms()}-{secrets.token_hex(4)[:7]}"


def now_ms() -> int:
    return int(time.time() * 1000)


def parameter_type_label(kind: ParameterType | str) -> str:
    try:
        return PARAMETER_TYPE_LABELS[ParameterType(kind)]
    except ValueError:
        return "Unknown"


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True, use_enum_values=False)

    def to_storage(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Parameter(_Model):
    """A single key/value override."""

    id: str = Field(default_factory=generate_id)
    type: ParameterType = ParameterType.QUERY_PARAMETER
    key: str = ""
    value: str = ""
    description: str | None = None
    primitive_type: PrimitiveType | None = Field(None, alias="primitiveType")

    @property
    def is_boolean(self) -> bool:
        return self.primitive_type == PrimitiveType.BOOLEAN


class Preset(_Model):
    """A named, ordered collection of parameters toggled as a unit."""

    id: str = Field(default_factory=generate_id)
    name: str = ""
    description: str | None = None
    parameters: list[Parameter] = Field(default_factory=list)
    created_at: int | None = Field(default_factory=now_ms, alias="createdAt")
    updated_at: int | None = Field(default_factory=now_ms, alias="updatedAt")


class PresetView(_Model):
    """A preset paired with its activation state on one tab."""

    preset: Preset
    is_active: bool = Field(False, alias="isActive")


def create_empty_parameter(kind: ParameterType = ParameterType.QUERY_PARAMETER) -> Parameter:
    return Parameter(type=kind)


def create_empty_preset() -> Preset:
    return Preset()
