"""Per-client sliding-window rate limiter.

Each client key owns a time-ordered log of admission instants. A check
purges instants that left the trailing window, admits the request if fewer
than ``max_requests`` remain, and records the admission, all inside one
critical section. Rejected checks are never recorded, so a throttled client
regains quota as soon as its oldest admission ages out.

State is split across lock shards keyed by the client key, so clients in
different shards never contend. Critical sections never await, which keeps
the limiter safe to call from the event loop and from worker threads alike.
"""

import math
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Optional

from chatproxy.app.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class RateLimitResult:
    """Result of a rate limit check."""
    allowed: bool
    limit: int
    remaining: int
    reset_time: int
    retry_after: Optional[int] = None


class _Shard:
    __slots__ = ("lock", "windows", "checks")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.windows: Dict[str, Deque[float]] = {}
        self.checks = 0


class RateLimiter:
    """In-memory sliding-window log limiter.

    Memory is bounded by active clients: a client whose window has emptied is
    dropped by an amortised sweep of its shard (every ``sweep_interval``
    checks landing in that shard) or by an explicit :meth:`cleanup`.
    """

    DEFAULT_SHARDS = 16
    DEFAULT_SWEEP_INTERVAL = 1024

    def __init__(
        self,
        max_requests: int = 10,
        window_seconds: float = 60.0,
        shards: int = DEFAULT_SHARDS,
        sweep_interval: int = DEFAULT_SWEEP_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize rate limiter.

        Args:
            max_requests: Admissions allowed per client within the window
            window_seconds: Length of the trailing window in seconds
            shards: Number of independently locked partitions
            sweep_interval: Checks per shard between sweeps of idle clients
            clock: Monotonic time source, injectable for tests
        """
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        if shards < 1:
            raise ValueError("shards must be at least 1")
        if sweep_interval < 1:
            raise ValueError("sweep_interval must be at least 1")

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._shards = tuple(_Shard() for _ in range(shards))

    def _shard_for(self, client_key: str) -> _Shard:
        return self._shards[hash(client_key) % len(self._shards)]

    def _purge(self, window: Deque[float], now: float) -> None:
        # Instants exactly at the window edge are expired.
        cutoff = now - self.window_seconds
        while window and window[0] <= cutoff:
            window.popleft()

    def _sweep(self, shard: _Shard, now: float) -> int:
        idle = []
        for key, window in shard.windows.items():
            self._purge(window, now)
            if not window:
                idle.append(key)
        for key in idle:
            del shard.windows[key]
        return len(idle)

    def check(self, client_key: str) -> RateLimitResult:
        """Check and, if allowed, record a request for ``client_key``."""
        shard = self._shard_for(client_key)
        with shard.lock:
            now = self._clock()

            shard.checks += 1
            if shard.checks >= self.sweep_interval:
                shard.checks = 0
                self._sweep(shard, now)

            window = shard.windows.get(client_key)
            if window is None:
                window = deque()
                shard.windows[client_key] = window
            else:
                self._purge(window, now)

            if len(window) >= self.max_requests:
                wait = window[0] + self.window_seconds - now
                retry_after = max(1, math.ceil(wait))
                return RateLimitResult(
                    allowed=False,
                    limit=self.max_requests,
                    remaining=0,
                    reset_time=int(time.time() + wait),
                    retry_after=retry_after,
                )

            window.append(now)
            reset_in = window[0] + self.window_seconds - now
            return RateLimitResult(
                allowed=True,
                limit=self.max_requests,
                remaining=self.max_requests - len(window),
                reset_time=int(time.time() + reset_in),
            )

    def allow(self, client_key: str) -> bool:
        """Return True and record the request if ``client_key`` is under quota."""
        return self.check(client_key).allowed

    def cleanup(self) -> int:
        """Drop every client whose window has emptied.

        Returns:
            Number of client records removed.
        """
        removed = 0
        for shard in self._shards:
            with shard.lock:
                removed += self._sweep(shard, self._clock())
        if removed:
            logger.debug(f"Rate limiter dropped {removed} idle clients")
        return removed

    @property
    def client_count(self) -> int:
        """Number of clients currently tracked."""
        total = 0
        for shard in self._shards:
            with shard.lock:
                total += len(shard.windows)
        return total
