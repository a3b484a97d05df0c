"""
Local durable cache: a small key/value surface that survives restarts.

The engine stores its full SiteData snapshot under one well-known key and
the bounded activity log under another. Values are opaque strings (JSON in
practice); the cache never interprets them.

Two implementations are provided:
- ``SQLiteLocalCache`` persists to a single SQLite file (owner-only perms)
- ``MemoryLocalCache`` keeps everything in a dict (tests, throwaway runs)
"""

import logging
import os
import sqlite3
import sys
import time
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Database schema
# ---------------------------------------------------------------------------

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at REAL NOT NULL
);
"""


class LocalCache(Protocol):
    """Key/value contract used by the engine and the activity log."""

    def read(self, key: str) -> str | None: ...

    def write(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


# ---------------------------------------------------------------------------
# SQLiteLocalCache
# ---------------------------------------------------------------------------


class SQLiteLocalCache:
    """SQLite-backed key/value cache."""

    def __init__(self, db_path: Path | str):
        """
        Initialise the cache.

        Args:
            db_path: Database file.  Parent directories are created.
        """
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()
        if sys.platform != "win32":
            try:
                os.chmod(self.db_path, 0o600)
            except OSError:
                pass  # best-effort; some filesystems ignore POSIX modes
        logger.debug("Local cache initialised at %s", self.db_path)

    def _init_db(self) -> None:
        """Create tables if they don't exist."""
        with sqlite3.connect(self.db_path) as conn:
            conn.executescript(SCHEMA_SQL)
            conn.commit()

    def _conn(self) -> sqlite3.Connection:
        """Return a new connection with useful pragmas."""
        conn = sqlite3.connect(self.db_path, timeout=30.0)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA busy_timeout=30000")
        return conn

    def read(self, key: str) -> str | None:
        """Return the stored value for *key*, or None."""
        with self._conn() as conn:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        return row["value"] if row else None

    def write(self, key: str, value: str) -> None:
        """Insert or replace *key*."""
        with self._conn() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)",
                (key, value, time.time()),
            )
            conn.commit()

    def remove(self, key: str) -> None:
        """Delete *key* if present."""
        with self._conn() as conn:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            conn.commit()
        logger.info("Local cache entry %s removed", key)

    def keys(self) -> list[str]:
        with self._conn() as conn:
            rows = conn.execute("SELECT key FROM kv_store ORDER BY key").fetchall()
        return [r["key"] for r in rows]


class MemoryLocalCache:
    """In-process key/value cache."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})
        self.writes = 0

    def read(self, key: str) -> str | None:
        return self.data.get(key)

    def write(self, key: str, value: str) -> None:
        self.writes += 1
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)
