"""SQLite-backed key-value store with sync/local scopes."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import aiosqlite

from storage.contracts import BaseKVStore, StorageChange, StorageScope


class SQLiteKVStore(BaseKVStore):
    """Scoped JSON documents in a single ``kv_entries`` table.

    One async connection, lazily created; all writes go through it so the
    event loop serialises them.
    """

    def __init__(self, db_path: str | Path) -> None:
        super().__init__()
        self._db_path = Path(db_path)
        self._conn: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    async def _get_conn(self) -> aiosqlite.Connection:
        if self._conn is not None:
            return self._conn
        async with self._lock:
            if self._conn is not None:
                return self._conn
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = await aiosqlite.connect(str(self._db_path))
            await conn.execute("PRAGMA journal_mode=WAL")
            await conn.execute("PRAGMA synchronous=NORMAL")
            await conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_entries (
                    scope      TEXT NOT NULL,
                    key        TEXT NOT NULL,
                    value      TEXT NOT NULL,
                    updated_at TEXT DEFAULT (datetime('now')),
                    PRIMARY KEY (scope, key)
                )
                """
            )
            await conn.commit()
            self._conn = conn
            return conn

    async def close(self) -> None:
        async with self._lock:
            if self._conn is not None:
                await self._conn.close()
                self._conn = None

    async def _read(self, scope: StorageScope, keys: list[str]) -> dict[str, Any]:
        if not keys:
            return {}
        conn = await self._get_conn()
        placeholders = ", ".join("?" for _ in keys)
        async with conn.execute(
            f"SELECT key, value FROM kv_entries WHERE scope = ? AND key IN ({placeholders})",
            (scope, *keys),
        ) as cursor:
            rows = await cursor.fetchall()
        return {row[0]: json.loads(row[1]) for row in rows}

    async def _write(self, scope: StorageScope, values: dict[str, Any]) -> dict[str, StorageChange]:
        previous = await self._read(scope, list(values))
        conn = await self._get_conn()
        await conn.executemany(
            """
            INSERT INTO kv_entries (scope, key, value, updated_at)
            VALUES (?, ?, ?, datetime('now'))
            ON CONFLICT(scope, key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
            """,
            [(scope, key, json.dumps(value, ensure_ascii=False)) for key, value in values.items()],
        )
        await conn.commit()
        return {
            key: StorageChange(old_value=previous.get(key), new_value=value)
            for key, value in values.items()
        }
