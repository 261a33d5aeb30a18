"""
Request throttling: a cooldown for admin operations and per-client limiters.
"""

import threading
import time
from typing import Callable, Dict, Optional, Tuple


class Cooldown:
    """
    Allows one acquisition per ``seconds`` window.

    Attempts inside the window are rejected without resetting it.
    """

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic):
        self.seconds = seconds
        self._clock = clock
        self._last: Optional[float] = None
        self._lock = threading.Lock()

    def try_acquire(self) -> bool:
        with self._lock:
            now = self._clock()
            if self._last is not None and now - self._last < self.seconds:
                return False
            self._last = now
            return True

    def remaining(self) -> float:
        """Seconds until the next acquisition is allowed."""
        with self._lock:
            if self._last is None:
                return 0.0
            return max(0.0, self.seconds - (self._clock() - self._last))


class WindowLimiter:
    """
    Per-client fixed-window request limiter.

    Each key may make ``max_requests`` requests per ``window_seconds``. The
    window starts at the key's first request and resets once it has elapsed.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._lock = threading.Lock()

    def hit(self, key: str) -> bool:
        """Count a request for key. Returns False when the key is over its limit."""
        with self._lock:
            now = self._clock()
            started, count = self._windows.get(key, (now, 0))
            if now - started >= self.window_seconds:
                started, count = now, 0
            if count >= self.max_requests:
                self._windows[key] = (started, count)
                return False
            self._windows[key] = (started, count + 1)
            self._prune(now)
            return True

    def _prune(self, now: float) -> None:
        expired = [k for k, (started, _) in self._windows.items() if now - started >= self.window_seconds]
        for k in expired:
            del self._windows[k]
