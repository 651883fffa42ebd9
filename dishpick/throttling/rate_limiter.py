"""
Per-client request throttling for recommendation computations.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Callable

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter:
    """Thread-safe per-client rate limiter using a sliding window.

    Each client key keeps the timestamps of its calls inside the window.
    Timestamps older than the window are dropped on every check, and a
    client whose window empties out is evicted entirely, so memory stays
    bounded by the number of clients active within one window.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            limit: Number of allowed calls per client within the window
            window_seconds: Window length in seconds
            clock: Monotonic time source, injectable for tests
        """
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._calls: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    def _evict(self, now: float) -> None:
        cutoff = now - self.window_seconds
        for key in list(self._calls):
            calls = self._calls[key]
            while calls and calls[0] <= cutoff:
                calls.popleft()
            if not calls:
                del self._calls[key]

    def allow(self, key: str) -> bool:
        """Record a call for *key* and return whether it is within the limit."""
        with self._lock:
            now = self._clock()
            self._evict(now)
            calls = self._calls.setdefault(key, deque())
            if len(calls) >= self.limit:
                logger.debug("Rate limit reached for %s", key)
                if not calls:
                    del self._calls[key]
                return False
            calls.append(now)
            return True

    def remaining(self, key: str) -> int:
        with self._lock:
            self._evict(self._clock())
            return max(0, self.limit - len(self._calls.get(key, ())))

    def reset_in(self, key: str) -> float:
        """Seconds until *key* regains a slot (0 when it already has one)."""
        with self._lock:
            now = self._clock()
            self._evict(now)
            calls = self._calls.get(key)
            if not calls or len(calls) < self.limit:
                return 0.0
            return max(0.0, calls[0] + self.window_seconds - now)

    def tracked_clients(self) -> int:
        with self._lock:
            self._evict(self._clock())
            return len(self._calls)

    def reset(self) -> None:
        with self._lock:
            self._calls.clear()
