"""
Work Tracker — Local Document Store.

SQLite-backed persistence for everything the tracker keeps: a key-value
table for settings and reset bookkeeping, and a records table holding the
JSON documents of each named store (checklistItems, todos, meetings,
journals). The async StoragePort adapter wraps this class.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def generate_id() -> str:
    return uuid.uuid4().hex


class TrackerDB:
    """SQLite-backed key-value space plus named JSON document stores."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from worktracker.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        """Create the kv and records tables if they don't exist."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv (
                    key    TEXT PRIMARY KEY,
                    value  TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS records (
                    store  TEXT NOT NULL,
                    id     TEXT NOT NULL,
                    date   TEXT,
                    data   TEXT NOT NULL,
                    updated_at TEXT,
                    PRIMARY KEY (store, id)
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_records_store_date ON records (store, date)"
            )
        logger.debug("Tracker store initialized at %s", self._db_path)

    # ------------------------------------------------------------------
    # Key-value space
    # ------------------------------------------------------------------

    def get(self, key: str) -> Any | None:
        """Return the decoded value for key, or None if unset."""
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        if row is None:
            return None
        return json.loads(row["value"])

    def set(self, key: str, value: Any) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO kv (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, json.dumps(value)),
            )

    def remove(self, key: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM kv WHERE key = ?", (key,))
        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Document stores
    # ------------------------------------------------------------------

    def get_all(
        self,
        store_name: str,
        filter_field: str | None = None,
        filter_value: Any = None,
    ) -> list[dict]:
        """Return every record in a store, optionally filtered by one field.

        ``date`` is indexed; any other field is matched in Python after
        decoding, which keeps the filter semantics identical for both.
        """
        query = "SELECT data FROM records WHERE store = ?"
        params: list = [store_name]
        if filter_field == "date" and filter_value is not None:
            query += " AND date = ?"
            params.append(filter_value)
        query += " ORDER BY rowid"

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()

        records = [json.loads(r["data"]) for r in rows]
        if filter_field and filter_field != "date" and filter_value is not None:
            records = [r for r in records if r.get(filter_field) == filter_value]
        return records

    def get_record(self, store_name: str, record_id: str) -> dict | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT data FROM records WHERE store = ? AND id = ?",
                (store_name, record_id),
            ).fetchone()
        if row is None:
            return None
        return json.loads(row["data"])

    def save(self, store_name: str, record: dict) -> dict:
        """Upsert a record by id. Assigns an id and stamps updated_at."""
        data = dict(record)
        if not data.get("id"):
            data["id"] = generate_id()
        data["updated_at"] = datetime.now(timezone.utc).isoformat()

        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO records (store, id, date, data, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(store, id) DO UPDATE SET
                    date = excluded.date,
                    data = excluded.data,
                    updated_at = excluded.updated_at
                """,
                (store_name, data["id"], data.get("date"), json.dumps(data), data["updated_at"]),
            )
        return data

    def delete(self, store_name: str, record_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM records WHERE store = ? AND id = ?",
                (store_name, record_id),
            )
        return cursor.rowcount > 0

    def clear(self, store_name: str) -> int:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM records WHERE store = ?", (store_name,))
        logger.info("Cleared %d records from %s", cursor.rowcount, store_name)
        return cursor.rowcount
