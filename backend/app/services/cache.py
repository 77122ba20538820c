"""
In-process TTL caches.

WHAT THIS DOES:
Thin wrapper around cachetools.TTLCache with a fixed max size and a TTL.
The service container builds two of these:

- search results, keyed by the tuple of queries
- verification responses, keyed by a hash of (normalized text, mode, lang)

Caches are best-effort: a miss (or a cleared cache) only costs an extra
collaborator call. They are cleared on shutdown.

USAGE:
    cache = TTLCacheService(maxsize=512, ttl_seconds=3600)
    cached = cache.get(key)
    if cached is None:
        value = await compute()
        cache.set(key, value)
"""

import hashlib
import logging
from typing import Any, Hashable, Optional

from cachetools import TTLCache

logger = logging.getLogger(__name__)


class TTLCacheService:
    """Bounded, time-limited cache. Values older than ttl_seconds are gone."""

    def __init__(self, maxsize: int, ttl_seconds: float, name: str = "cache"):
        self.name = name
        self._cache: TTLCache = TTLCache(maxsize=max(1, maxsize), ttl=ttl_seconds)
        self.hits = 0
        self.misses = 0

    def get(self, key: Hashable) -> Optional[Any]:
        value = self._cache.get(key)
        if value is None:
            self.misses += 1
        else:
            self.hits += 1
        return value

    def set(self, key: Hashable, value: Any) -> None:
        self._cache[key] = value

    def clear(self) -> None:
        size = len(self._cache)
        self._cache.clear()
        logger.info(f"Cleared {self.name} ({size} entries, {self.hits} hits, {self.misses} misses)")

    def __len__(self) -> int:
        return len(self._cache)


def response_cache_key(text: str, mode: str, lang: str) -> str:
    """SHA-256 over the normalized text plus the options that change the output."""
    digest = hashlib.sha256()
    for part in (text, mode, lang):
        digest.update(part.encode("utf-8"))
        digest.update(b"\x00")
    return digest.hexdigest()
