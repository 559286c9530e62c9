from __future__ import annotations

"""
Bounded, expiring key -> value store for memoizing gate and lookup results
within one worker's lifetime.

Eviction is lazy on read (expired entries are dropped and reported absent)
and FIFO on write: at capacity the oldest inserted key goes first. Reads do
not reorder entries, so this is not an LRU.
"""

import threading
import time
from functools import lru_cache
from typing import Any, Callable, Dict, Hashable, List, Optional, Tuple

from loguru import logger

from .config import MAX_ITEMS, GateSettings

Clock = Callable[[], float]


class TTLCache:
    def __init__(self, max_items: int = MAX_ITEMS, clock: Clock = time.monotonic):
        if max_items < 1:
            raise ValueError(f"max_items must be >= 1, got {max_items}")
        self.max_items = max_items
        self._clock = clock
        self._lock = threading.Lock()
        # dict preserves insertion order; the first key is the oldest
        self._store: Dict[Hashable, Tuple[Any, float]] = {}

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    def get(self, key: Hashable) -> Optional[Any]:
        with self._lock:
            item = self._store.get(key)
            if item is None:
                return None
            value, expires_at = item
            if expires_at < self._now_ms():
                del self._store[key]
                return None
            return value

    def set(self, key: Hashable, value: Any, ttl_ms: float) -> None:
        with self._lock:
            expires_at = self._now_ms() + max(float(ttl_ms), 0.0)
            if key in self._store:
                # re-insert at the back, no eviction needed
                del self._store[key]
            elif len(self._store) >= self.max_items:
                oldest = next(iter(self._store))
                del self._store[oldest]
                logger.debug("Cache full ({}), evicted oldest key {!r}", self.max_items, oldest)
            self._store[key] = (value, expires_at)

    def keys(self) -> List[Hashable]:
        with self._lock:
            return list(self._store)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None


# ---------------------------------------------------------------------------
# Process-wide instance
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_shared_cache() -> TTLCache:
    settings = GateSettings.from_env()
    logger.info("Shared cache created (max_items={})", settings.cache_max_items)
    return TTLCache(max_items=settings.cache_max_items)


def get_cache(key: Hashable) -> Optional[Any]:
    return get_shared_cache().get(key)


def set_cache(key: Hashable, value: Any, ttl_ms: float) -> None:
    get_shared_cache().set(key, value, ttl_ms)


def cached(
    key: Hashable,
    ttl_ms: float,
    compute: Callable[[], Any],
    cache: Optional[TTLCache] = None,
) -> Any:
    """Return the cached value for ``key`` or compute, store and return it."""
    cache = cache if cache is not None else get_shared_cache()
    hit = cache.get(key)
    if hit is not None:
        return hit
    value = compute()
    if value is not None:
        cache.set(key, value, ttl_ms)
    return value
