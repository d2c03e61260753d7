"""Host capabilities consumed by the parameter engine."""

from .capabilities import LocalEntryOp, LocalEntryResult, TargetCapabilities, TabId

__all__ = [
    "LocalEntryOp",
    "LocalEntryResult",
    "TabId",
    "TargetCapabilities",
]
