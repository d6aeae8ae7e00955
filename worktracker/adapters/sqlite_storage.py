"""SQLite storage adapter — implements StoragePort.

TrackerDB is synchronous; every call is pushed onto a worker thread with
asyncio.to_thread so the event loop keeps running while SQLite works.
Any sqlite3 failure surfaces as StorageError.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from typing import Any

from worktracker.data.db import TrackerDB
from worktracker.ports.storage_port import StorageError

logger = logging.getLogger(__name__)


class SQLiteStorage:
    """SQLite implementation of StoragePort."""

    def __init__(self, db: TrackerDB | None = None, db_path: str | None = None) -> None:
        self._db = db or TrackerDB(db_path=db_path)

    async def _run(self, op: str, fn, *args):
        try:
            return await asyncio.to_thread(fn, *args)
        except (sqlite3.Error, TypeError, ValueError) as exc:
            logger.error("Storage %s failed: %s", op, exc)
            raise StorageError(f"{op} failed: {exc}") from exc

    async def get(self, key: str) -> Any | None:
        return await self._run("get", self._db.get, key)

    async def set(self, key: str, value: Any) -> None:
        await self._run("set", self._db.set, key, value)

    async def remove(self, key: str) -> None:
        await self._run("remove", self._db.remove, key)

    async def get_all_from_store(
        self,
        store_name: str,
        filter_field: str | None = None,
        filter_value: Any = None,
    ) -> list[dict]:
        return await self._run(
            "get_all_from_store", self._db.get_all, store_name, filter_field, filter_value,
        )

    async def save_to_store(self, store_name: str, record: dict) -> dict:
        return await self._run("save_to_store", self._db.save, store_name, record)

    async def delete_from_store(self, store_name: str, record_id: str) -> None:
        await self._run("delete_from_store", self._db.delete, store_name, record_id)

    async def clear_store(self, store_name: str) -> None:
        await self._run("clear_store", self._db.clear, store_name)
