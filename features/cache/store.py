"""
Response cache — in-memory key/value store of fetched payloads.

Entries carry an optional TTL and ETag. Expiry is lazy: an expired entry is
evicted by the read that finds it, there is no background sweep. The store
is process-local and empty after a restart.

Concurrent requests for the same key may race; the last write wins. That is
safe because entries are immutable snapshots replaced wholesale.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from features.cache.models import CacheEntry

log = logging.getLogger(__name__)


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


class ResponseCache:
    """Shared cache service, constructed once per process.

    The clock is injectable so tests can move time deterministically.
    """

    def __init__(self, clock: Callable[[], int] | None = None):
        self._clock = clock or _wall_clock_ms
        self._entries: dict[str, CacheEntry] = {}

    def now_ms(self) -> int:
        return self._clock()

    def get(self, key: str) -> CacheEntry | None:
        """Return the entry for key, or None if missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            log.debug("Cache expired: %s", key)
            self._entries.pop(key, None)
            return None
        return entry

    def set(self, key: str, data: Any, etag: str | None = None, ttl_ms: int | None = None) -> CacheEntry:
        """Store data under key, overwriting any previous entry.

        fetched_at is always stamped here: only the store asserts freshness.
        """
        entry = CacheEntry(data=data, fetched_at=self._clock(), etag=etag, ttl_ms=ttl_ms)
        self._entries[key] = entry
        return entry

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def get_etag(self, key: str) -> str | None:
        entry = self.get(key)
        return entry.etag if entry else None

    def age_ms(self, entry: CacheEntry) -> int:
        return self._clock() - entry.fetched_at

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
