"""
In-memory TTL cache shared by the lyric resolver and the companion locator

Each entry carries its own time-to-live so that confirmed-negative results
(no lyrics, no video) can expire much sooner than positive ones. Size is
bounded: when the cache is full the least recently used entry is evicted.
"""

import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Optional


@dataclass(frozen=True)
class CacheEntry:
    """A cached value with its creation time and expiry, in seconds of the cache clock"""
    value: Any
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class TTLCache:
    """
    Bounded cache with per-entry TTL and LRU eviction

    The cache is owned by a single component and accessed from one event loop,
    so it needs no locking. The clock is injectable for tests.
    """

    def __init__(self, max_entries: int = 256, clock: Optional[Callable[[], float]] = None):
        """
        Args:
            max_entries: Maximum number of live entries before LRU eviction
            clock: Callable returning the current time in seconds (default: time.monotonic)
        """
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._clock = clock or time.monotonic
        self._entries: "OrderedDict[Hashable, CacheEntry]" = OrderedDict()

    def lookup(self, key: Hashable) -> Optional[CacheEntry]:
        """
        Return the live entry for key, or None on a miss

        Expired entries are removed on access. A hit refreshes the entry's
        recency for LRU purposes but never extends its TTL.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return entry

    def get(self, key: Hashable, default: Any = None) -> Any:
        entry = self.lookup(key)
        return entry.value if entry is not None else default

    def set(self, key: Hashable, value: Any, ttl: float) -> CacheEntry:
        """
        Store value under key for ttl seconds

        Returns:
            The stored CacheEntry
        """
        now = self._clock()
        entry = CacheEntry(value=value, created_at=now, expires_at=now + max(0.0, ttl))
        self._entries[key] = entry
        self._entries.move_to_end(key)
        self._enforce_size()
        return entry

    def evict(self, key: Hashable) -> bool:
        """Remove key; returns True if it was present"""
        return self._entries.pop(key, None) is not None

    def purge_expired(self) -> int:
        """Drop every expired entry and return how many were removed"""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def _enforce_size(self) -> None:
        if len(self._entries) <= self.max_entries:
            return
        self.purge_expired()
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def __contains__(self, key: Hashable) -> bool:
        return self.lookup(key) is not None

    def __len__(self) -> int:
        return len(self._entries)
