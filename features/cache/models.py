"""
Data models for the cache feature.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class CacheEntry:
    """A cached payload. Replaced wholesale on write, never mutated."""
    data: Any
    fetched_at: int  # epoch ms, stamped by the store
    etag: str | None = None
    ttl_ms: int | None = None  # None: never expires by time

    def is_expired(self, now_ms: int) -> bool:
        if self.ttl_ms is None:
            return False
        return now_ms - self.fetched_at > self.ttl_ms
