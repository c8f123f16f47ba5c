"""Bounded in-memory cache of completions keyed by prompt.

Eviction is least-recently-used: reads and writes both move an entry to the
most-recent end, and inserting a new key at capacity evicts exactly one entry
from the least-recent end. An optional TTL hides entries older than
``ttl_seconds``; they are dropped when next looked up.

LRU order is global, so a single lock guards the map. Every critical section
is a handful of dict operations and never awaits.
"""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional

from chatproxy.app.core.logging import get_logger

logger = get_logger(__name__)


def normalize_key(message: str) -> str:
    """Cache key for a chat message: surrounding whitespace is ignored."""
    return message.strip()


@dataclass(frozen=True)
class CacheEntry:
    """One prompt to completion pairing. Never modified once stored."""
    key: str
    value: str
    created_at: float


@dataclass(frozen=True)
class CacheStats:
    size: int
    capacity: int
    hits: int
    misses: int
    evictions: int


class ResponseCache:
    """Thread-safe LRU cache of completion text."""

    def __init__(
        self,
        capacity: int = 1000,
        ttl_seconds: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the cache.

        Args:
            capacity: Maximum number of entries held at once
            ttl_seconds: Entry lifetime in seconds, 0 disables expiry
            clock: Monotonic time source, injectable for tests
        """
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must not be negative")

        self.capacity = capacity
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return self.ttl_seconds > 0 and now - entry.created_at >= self.ttl_seconds

    def _purge_expired(self, now: float) -> None:
        # Caller holds the lock. Expired entries go before any live one is evicted.
        expired = [k for k, e in self._entries.items() if self._is_expired(e, now)]
        for k in expired:
            del self._entries[k]

    def get(self, key: str) -> Optional[str]:
        """Return the stored completion for ``key``, or None."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if self._is_expired(entry, self._clock()):
                del self._entries[key]
                self._misses += 1
                return None
            self._entries.move_to_end(key)
            self._hits += 1
            return entry.value

    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, evicting the LRU entry when full."""
        with self._lock:
            entry = CacheEntry(key=key, value=value, created_at=self._clock())
            if key in self._entries:
                self._entries[key] = entry
                self._entries.move_to_end(key)
                return

            evicted = None
            if len(self._entries) >= self.capacity and self.ttl_seconds > 0:
                self._purge_expired(entry.created_at)
            if len(self._entries) >= self.capacity:
                evicted, _ = self._entries.popitem(last=False)
                self._evictions += 1
            self._entries[key] = entry

        if evicted is not None:
            logger.debug(f"Evicted least recently used cache entry ({len(evicted)} chars)")

    def delete(self, key: str) -> bool:
        """Remove ``key``. Returns True if it was present."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                size=len(self._entries),
                capacity=self.capacity,
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        # Membership does not touch recency or hit counters.
        with self._lock:
            entry = self._entries.get(key)  # type: ignore[arg-type]
            return entry is not None and not self._is_expired(entry, self._clock())
