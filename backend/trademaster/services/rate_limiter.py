"""In-process sliding-window rate limiting."""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Callable, Deque, Dict

# Idle keys are dropped at most this often.
SWEEP_INTERVAL_SECONDS = 60.0


class SlidingWindowRateLimiter:
    """Counts hits per key over a trailing window. Single-process only."""

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval: float = SWEEP_INTERVAL_SECONDS,
    ) -> None:
        self._lock = threading.Lock()
        self._hits: Dict[str, Deque[float]] = {}
        self._windows: Dict[str, int] = {}
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._last_sweep = clock()

    def allow(self, key: str, limit: int, window_seconds: int) -> bool:
        """Record a hit for ``key`` unless ``limit`` hits already fall inside the window."""
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= self._sweep_interval:
                self._sweep(now)

            hits = self._hits.setdefault(key, deque())
            self._windows[key] = window_seconds
            _prune(hits, now, window_seconds)
            if len(hits) >= limit:
                if not hits:
                    self._drop(key)
                return False
            hits.append(now)
            return True

    def reset(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._hits.clear()
                self._windows.clear()
            else:
                self._drop(key)

    def _sweep(self, now: float) -> None:
        for key in list(self._hits):
            hits = self._hits[key]
            _prune(hits, now, self._windows.get(key, 0))
            if not hits:
                self._drop(key)
        self._last_sweep = now

    def _drop(self, key: str) -> None:
        self._hits.pop(key, None)
        self._windows.pop(key, None)

    def __len__(self) -> int:
        return len(self._hits)


def _prune(hits: Deque[float], now: float, window_seconds: int) -> None:
    while hits and hits[0] <= now - window_seconds:
        hits.popleft()


rate_limiter = SlidingWindowRateLimiter()
