"""Store provider implementations."""

from .memory import MemoryKVStore
from .sqlite import SQLiteKVStore

__all__ = [
    "MemoryKVStore",
    "SQLiteKVStore",
]
