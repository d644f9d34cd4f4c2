"""
Cache feature — process-local response cache with TTL and ETag support.

Public API:
    from features.cache import CacheEntry, ResponseCache
"""

from features.cache.models import CacheEntry
from features.cache.store import ResponseCache

__all__ = ["CacheEntry", "ResponseCache"]
