"""
SQLite storage.

One row per task holding the serialized record as JSON, plus a few
denormalized columns (status, parent, schedule) so the file stays
inspectable with the sqlite3 shell. A save rewrites the table inside a
single transaction.

Dependencies:
    - sqlite3 (stdlib)
"""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any

from atomize.logging_config import get_logger

from .base import StorageAdapter

logger = get_logger(__name__)


class SqliteStorageAdapter(StorageAdapter):
    name = "sqlite"

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._conn: sqlite3.Connection | None = None

    def get_connection(self) -> sqlite3.Connection:
        """Get database connection, creating tables if needed."""
        if self._conn is not None:
            return self._conn

        if str(self.path) != ":memory:":
            self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.path))
        conn.row_factory = sqlite3.Row

        cursor = conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS tasks (
                id TEXT PRIMARY KEY,
                position INTEGER NOT NULL,
                status TEXT NOT NULL,
                parent_id TEXT,
                scheduled_date TEXT,
                data TEXT NOT NULL
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS preferences (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                data TEXT NOT NULL
            )
        """)
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_tasks_parent ON tasks(parent_id)")
        conn.commit()

        self._conn = conn
        return conn

    def load(self) -> list[dict[str, Any]]:
        conn = self.get_connection()
        rows = conn.execute("SELECT data FROM tasks ORDER BY position").fetchall()
        return [json.loads(row["data"]) for row in rows]

    def save(self, records: list[dict[str, Any]]) -> None:
        conn = self.get_connection()
        with conn:
            conn.execute("DELETE FROM tasks")
            conn.executemany(
                """
                INSERT INTO tasks (id, position, status, parent_id, scheduled_date, data)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        record["id"],
                        position,
                        record.get("status", "pending"),
                        record.get("parent_id"),
                        record.get("scheduled_date"),
                        json.dumps(record, ensure_ascii=False),
                    )
                    for position, record in enumerate(records)
                ],
            )
        logger.debug(f"Saved {len(records)} tasks to {self.path}")

    def load_preferences(self) -> dict[str, Any] | None:
        conn = self.get_connection()
        row = conn.execute("SELECT data FROM preferences WHERE id = 1").fetchone()
        return json.loads(row["data"]) if row else None

    def save_preferences(self, preferences: dict[str, Any]) -> None:
        conn = self.get_connection()
        with conn:
            conn.execute(
                "INSERT OR REPLACE INTO preferences (id, data) VALUES (1, ?)",
                (json.dumps(preferences),),
            )

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
