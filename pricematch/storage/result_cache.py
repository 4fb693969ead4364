# pricematch/storage/result_cache.py

"""TTL cache for raw provider payloads.

Entries are keyed by provider id plus a hash of the request params,
so the same logical request always lands on the same key regardless
of dict ordering. A miss and an expired entry look the same to
callers; expired rows are evicted lazily on read and in bulk by
``purge_expired``. Concurrent writers are last-write-wins.
"""

import hashlib
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Protocol

from pricematch.config.settings import Settings

logger = logging.getLogger("pricematch.cache")


@dataclass
class CacheEntry:
    """A cached provider payload with its absolute expiry time."""

    key: str
    provider_id: str
    payload: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class CacheBackend(Protocol):
    """Minimal storage contract: read, write, delete, delete-expired."""

    def read(self, key: str) -> CacheEntry | None: ...

    def write(self, entry: CacheEntry) -> None: ...

    def delete(self, key: str) -> None: ...

    def delete_expired(self, now: float) -> int: ...

    def clear(self) -> int: ...


class MemoryCacheBackend:
    """In-process dict backend guarded by a lock."""

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def read(self, key: str) -> CacheEntry | None:
        with self._lock:
            return self._entries.get(key)

    def write(self, entry: CacheEntry) -> None:
        with self._lock:
            self._entries[entry.key] = entry

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def delete_expired(self, now: float) -> int:
        with self._lock:
            expired = [
                k for k, e in self._entries.items() if e.is_expired(now)
            ]
            for key in expired:
                del self._entries[key]
            return len(expired)

    def clear(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count


class ResultCache:
    """Provider payload cache with a default time-to-live."""

    def __init__(
        self,
        backend: CacheBackend | None = None,
        default_ttl: float | None = None,
    ) -> None:
        self.backend: CacheBackend = backend or MemoryCacheBackend()
        self.default_ttl = (
            default_ttl
            if default_ttl is not None
            else Settings.CACHE_TTL_SECONDS
        )

    @staticmethod
    def build_key(provider_id: str, params: dict[str, Any]) -> str:
        """Deterministic key: ``provider:`` plus a hash of sorted params."""
        serialised = json.dumps(params, sort_keys=True, default=str)
        digest = hashlib.sha256(serialised.encode("utf-8")).hexdigest()
        return f"{provider_id}:{digest[:32]}"

    def get(self, key: str) -> Any | None:
        """Return the cached payload, or ``None`` on miss or expiry."""
        entry = self.backend.read(key)
        if entry is None:
            return None
        if entry.is_expired(time.time()):
            self.backend.delete(key)
            logger.debug("Evicted expired cache entry %s", key)
            return None
        logger.debug("Cache hit for %s", key)
        return entry.payload

    def set(
        self,
        key: str,
        payload: Any,
        ttl: float | None = None,
        provider_id: str = "",
    ) -> None:
        """Store *payload* under *key* for *ttl* seconds."""
        lifetime = ttl if ttl is not None else self.default_ttl
        self.backend.write(
            CacheEntry(
                key=key,
                provider_id=provider_id or key.split(":", 1)[0],
                payload=payload,
                expires_at=time.time() + lifetime,
            )
        )

    def delete(self, key: str) -> None:
        """Remove a single entry."""
        self.backend.delete(key)

    def purge_expired(self) -> int:
        """Delete every expired entry. Returns the number removed."""
        removed = self.backend.delete_expired(time.time())
        if removed:
            logger.info("Purged %d expired cache entries", removed)
        return removed

    def clear(self) -> int:
        """Drop all entries. Returns the number removed."""
        count = self.backend.clear()
        logger.info("Cache manually purged (%d entries removed)", count)
        return count


def build_cache() -> ResultCache:
    """Create the cache selected by ``Settings.CACHE_BACKEND``."""
    if Settings.CACHE_BACKEND == "sqlite":
        from pricematch.storage.cache_db import SQLiteCacheBackend

        return ResultCache(SQLiteCacheBackend())
    return ResultCache()
