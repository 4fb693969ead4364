# pricematch/storage/cache_db.py

"""SQLite-backed storage for the provider result cache."""

import json
import logging
import sqlite3
import threading
from pathlib import Path

from pricematch.config.settings import Settings
from pricematch.storage.result_cache import CacheEntry

logger = logging.getLogger("pricematch.cache")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS result_cache (
    cache_key   TEXT PRIMARY KEY,
    provider_id TEXT NOT NULL,
    payload     TEXT NOT NULL,
    expires_at  REAL NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_result_cache_expires
    ON result_cache(expires_at);
"""


class SQLiteCacheBackend:
    """Persist cache entries in a single key/value table."""

    def __init__(self, db_path: Path | None = None) -> None:
        path = db_path or Settings.CACHE_DB_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(path), check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)
        self._lock = threading.Lock()
        logger.debug("Result cache DB opened at %s", path)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def read(self, key: str) -> CacheEntry | None:
        with self._lock:
            row = self._conn.execute(
                "SELECT cache_key, provider_id, payload, expires_at "
                "FROM result_cache WHERE cache_key = ?",
                (key,),
            ).fetchone()
        if row is None:
            return None
        try:
            payload = json.loads(row[2])
        except json.JSONDecodeError:
            logger.warning("Discarding corrupt cache row %s", key)
            self.delete(key)
            return None
        return CacheEntry(
            key=row[0],
            provider_id=row[1],
            payload=payload,
            expires_at=float(row[3]),
        )

    def write(self, entry: CacheEntry) -> None:
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO result_cache "
                "(cache_key, provider_id, payload, expires_at) "
                "VALUES (?, ?, ?, ?)",
                (
                    entry.key,
                    entry.provider_id,
                    json.dumps(entry.payload),
                    entry.expires_at,
                ),
            )
            self._conn.commit()

    def delete(self, key: str) -> None:
        with self._lock:
            self._conn.execute(
                "DELETE FROM result_cache WHERE cache_key = ?", (key,)
            )
            self._conn.commit()

    def delete_expired(self, now: float) -> int:
        with self._lock:
            cur = self._conn.execute(
                "DELETE FROM result_cache WHERE expires_at <= ?", (now,)
            )
            self._conn.commit()
            return cur.rowcount

    def clear(self) -> int:
        with self._lock:
            cur = self._conn.execute("DELETE FROM result_cache")
            self._conn.commit()
            return cur.rowcount
