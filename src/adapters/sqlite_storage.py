"""SQLite storage adapter.

Implements the core MemoryStoragePort using a simple SQLite database.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, Mapping

LOGGER = logging.getLogger(__name__)


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies the MemoryStoragePort contract."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - memory: one JSON value per (scope, key) pair
        """

        with self._connect() as conn:
            # Fields:
            # - scope: "global", "user:<id>" or "room:<id>"
            # - key: memory key within the scope
            # - value: JSON-encoded value
            # - updated_at: timestamp of the last save that touched the row
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS memory (
                    scope TEXT NOT NULL,
                    key TEXT NOT NULL,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP NOT NULL,
                    PRIMARY KEY (scope, key)
                )
                """
            )

    def load_memory(self) -> Dict[str, Dict[str, Any]]:
        """Return every persisted value grouped by scope."""

        snapshot: Dict[str, Dict[str, Any]] = {}
        with self._connect() as conn:
            rows = conn.execute("SELECT scope, key, value FROM memory").fetchall()
        for row in rows:
            try:
                value = json.loads(row["value"])
            except json.JSONDecodeError:
                LOGGER.warning("Skipping unreadable memory value %s/%s", row["scope"], row["key"])
                continue
            snapshot.setdefault(row["scope"], {})[row["key"]] = value
        return snapshot

    def save_memory(self, snapshot: Mapping[str, Mapping[str, Any]]) -> None:
        """Replace the persisted memory with ``snapshot``.

        Values that cannot be encoded as JSON are skipped with a warning; they
        stay available in process memory until restart.
        """

        now = datetime.now(timezone.utc).isoformat()
        rows = []
        for scope, values in snapshot.items():
            for key, value in values.items():
                try:
                    encoded = json.dumps(value, ensure_ascii=False)
                except (TypeError, ValueError):
                    LOGGER.warning("Memory value %s/%s is not JSON serializable", scope, key)
                    continue
                rows.append((scope, key, encoded, now))

        with self._connect() as conn:
            conn.execute("DELETE FROM memory")
            conn.executemany(
                "INSERT INTO memory (scope, key, value, updated_at) VALUES (?, ?, ?, ?)",
                rows,
            )
