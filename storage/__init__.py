from .contracts import BaseKVStore, DurableStore, StorageChange, StorageScope
from .runtime import build_store

__all__ = [
    "BaseKVStore",
    "DurableStore",
    "StorageChange",
    "StorageScope",
    "build_store",
]
