"""Parameters module - presets, overlay resolution and application."""

from .activation import PresetActivator, PresetState, ToggleResult
from .applicator import ParameterApplicator, ParameterVerification, PresetVerification
from .coder import DecompressResult, PresetCoder
from .engine import ParameterEngine
from .manager import ImportResult, PresetManager
from .messages import MessageDispatcher, ParameterMessageResponse
from .migrate import migrate_parameter, migrate_presets, migrate_presets_if_needed
from .overlay import RemovalPlan, get_effective_value, plan_removal
from .registry import ParameterTypeRegistry
from .storage import PresetRepo
from .timing import Waiter, WaitReason
from .types import (
    Parameter,
    ParameterType,
    Preset,
    PresetView,
    PrimitiveType,
    create_empty_parameter,
    create_empty_preset,
    generate_id,
    parameter_type_label,
)

__all__ = [
    "DecompressResult",
    "ImportResult",
    "MessageDispatcher",
    "Parameter",
    "ParameterApplicator",
    "ParameterEngine",
    "ParameterMessageResponse",
    "ParameterType",
    "ParameterTypeRegistry",
    "ParameterVerification",
    "Preset",
    "PresetActivator",
    "PresetCoder",
    "PresetManager",
    "PresetRepo",
    "PresetState",
    "PresetVerification",
    "PresetView",
    "PrimitiveType",
    "RemovalPlan",
    "ToggleResult",
    "WaitReason",
    "Waiter",
    "create_empty_parameter",
    "create_empty_preset",
    "generate_id",
    "get_effective_value",
    "migrate_parameter",
    "migrate_presets",
    "migrate_presets_if_needed",
    "parameter_type_label",
    "plan_removal",
]
