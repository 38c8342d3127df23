"""Small in-memory TTL cache with FIFO eviction and hit/miss accounting.

Store values with a monotonic insertion and expiration timestamp, evict the
oldest inserted entry when maxsize would be exceeded, and keep cumulative
hit/miss counters for the life of the instance.
"""

from __future__ import annotations

import logging
import re
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Generic, List, Optional, TypeVar, Union

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CacheEntry(Generic[T]):
    # Stores value + monotonic insertion/expiration times
    value: T
    inserted_at: float  # time.monotonic()
    expires_at: float


@dataclass(frozen=True)
class CacheStats:
    size: int
    hit_rate: float


class QueryCache(Generic[T]):
    """Bounded, expiring string-keyed cache.

    Eviction is by insertion order (FIFO): reads never reorder entries, and
    replacing a key refreshes its insertion time. Expired entries are removed
    lazily on access, eagerly by prune(), or before an eviction is needed.
    """

    def __init__(self, *, ttl_seconds: float, maxsize: int) -> None:
        self._ttl = float(ttl_seconds)
        self._maxsize = max(1, int(maxsize))
        self._store: "OrderedDict[str, CacheEntry[T]]" = OrderedDict()
        self._hits = 0
        self._misses = 0

    @property
    def maxsize(self) -> int:
        return self._maxsize

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self, key: str) -> Optional[T]:
        entry = self._store.get(key)
        if entry is None:
            self._misses += 1
            return None

        if time.monotonic() >= entry.expires_at:
            self._store.pop(key, None)
            self._misses += 1
            return None

        self._hits += 1
        return entry.value

    def peek(self, key: str) -> Optional[T]:
        # Counter-free read; expired entries are reported absent but left in place
        entry = self._store.get(key)
        if entry is None or time.monotonic() >= entry.expires_at:
            return None
        return entry.value

    def has(self, key: str) -> bool:
        entry = self._store.get(key)
        if entry is None:
            return False
        if time.monotonic() >= entry.expires_at:
            self._store.pop(key, None)
            return False
        return True

    def set(self, key: str, value: T) -> None:
        now = time.monotonic()

        if key in self._store:
            # Replacement counts as a fresh insertion
            del self._store[key]
        elif len(self._store) >= self._maxsize:
            self._make_room(now)

        self._store[key] = CacheEntry(value=value, inserted_at=now, expires_at=now + self._ttl)

    def delete(self, key: str) -> bool:
        return self._store.pop(key, None) is not None

    def keys(self) -> List[str]:
        return list(self._store.keys())

    def invalidate_pattern(self, pattern: Union[str, "re.Pattern[str]"]) -> int:
        if isinstance(pattern, str):
            matched = [k for k in self._store if pattern in k]
        else:
            matched = [k for k in self._store if pattern.search(k)]

        for key in matched:
            del self._store[key]

        if matched:
            logger.debug("Invalidated %d cache entries matching %r", len(matched), pattern)
        return len(matched)

    def prune(self) -> int:
        return self._drop_expired(time.monotonic())

    def clear(self) -> None:
        # Counters are cumulative for the life of the instance
        self._store.clear()

    def stats(self) -> CacheStats:
        lookups = self._hits + self._misses
        hit_rate = self._hits / lookups if lookups else 0.0
        return CacheStats(size=len(self._store), hit_rate=hit_rate)

    def __len__(self) -> int:
        return len(self._store)

    def _drop_expired(self, now: float) -> int:
        expired = [k for k, e in self._store.items() if now >= e.expires_at]
        for key in expired:
            del self._store[key]
        return len(expired)

    def _make_room(self, now: float) -> None:
        # Expired entries are logically absent, so reclaim them before evicting a live one
        self._drop_expired(now)

        while len(self._store) >= self._maxsize:
            evicted, _ = self._store.popitem(last=False)
            logger.debug("Evicted cache entry %r (maxsize=%d)", evicted, self._maxsize)
