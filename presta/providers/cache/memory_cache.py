"""In-memory cache provider using cachetools.TLRUCache.

Same contract as :class:`FileCacheProvider` without the backing file, for
long-lived dev processes and tests that must not touch disk.  ``TLRUCache``
gives each entry its own time-to-use, which is what per-key durations
need; least-recently-used entries are evicted once ``max_size`` is hit.
"""

from __future__ import annotations

import math
from typing import Any

import structlog
from cachetools import TLRUCache

from presta.interfaces.cache_provider import ICacheProvider
from presta.models.cache import CacheEntry, expiration_for, now_ms
from presta.utils.logging import get_logger


def _time_to_use(key: str, entry: CacheEntry, now: int) -> float:
    # TLRUCache drops an item once now >= ttu; entries expire strictly after
    # their expiration, hence the extra millisecond.
    if entry.expiration is None:
        return math.inf
    return entry.expiration + 1


class MemoryCacheProvider(ICacheProvider):
    """In-memory TTL cache backed by ``cachetools.TLRUCache``.

    Parameters
    ----------
    max_size:
        Maximum number of entries before the least-recently-used entry
        is evicted.
    """

    def __init__(self, max_size: int = 10_000) -> None:
        self._cache: TLRUCache[str, CacheEntry] = TLRUCache(
            maxsize=max_size,
            ttu=_time_to_use,
            timer=now_ms,
        )
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # ICacheProvider implementation
    # ------------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        """Retrieve the cached value for *key*, or *default* if missing/expired."""
        entry = self._cache.get(key)
        if entry is None:
            self._logger.debug("cache_miss", key=key)
            return default
        self._logger.debug("cache_hit", key=key)
        return entry.value

    def set(self, key: str, value: Any, duration: float | None = None) -> None:
        """Store *value* under *key* with an optional duration in seconds."""
        self._cache[key] = CacheEntry(key=key, value=value, expiration=expiration_for(duration))
        self._logger.debug("cache_set", key=key)

    def clear(self, key: str) -> None:
        """Remove *key* from the cache (no-op if absent)."""
        self._cache.pop(key, None)
        self._logger.debug("cache_clear", key=key)

    def clear_all_memory(self) -> None:
        immortal = [key for key, entry in list(self._cache.items()) if entry.is_immortal]
        for key in immortal:
            self._cache.pop(key, None)
        self._logger.debug("cache_memory_cleared", dropped=len(immortal))

    def cleanup(self) -> None:
        self._cache.clear()

    def dump(self) -> dict[str, Any]:
        self._cache.expire()
        return {key: entry.value for key, entry in self._cache.items()}

    def persist(self) -> None:
        """Nothing to persist; kept for interface parity."""

    def __contains__(self, key: object) -> bool:
        return key in self._cache

    def __len__(self) -> int:
        self._cache.expire()
        return len(self._cache)
