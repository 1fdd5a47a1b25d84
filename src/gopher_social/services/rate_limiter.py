"""Per-client fixed-window request limiter."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass


@dataclass
class _Window:
    start: float
    count: int


class FixedWindowLimiter:
    """Admit at most ``limit`` calls per key in each ``window``-second window.

    Windows are aligned to multiples of ``window`` on the limiter's clock and
    do not slide, so a burst straddling a boundary can see up to twice the
    limit across two adjacent windows.
    """

    def __init__(
        self,
        limit: int,
        window: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if window <= 0:
            raise ValueError("window must be positive")
        self.limit = limit
        self.window = window
        self._clock = clock
        self._lock = threading.Lock()
        self._windows: dict[str, _Window] = {}

    def allow(self, key: str) -> tuple[bool, float]:
        """Count one call for ``key``.

        Returns:
            ``(True, 0.0)`` when admitted, otherwise ``(False, remaining)``
            with the seconds left until the current window closes.
        """
        now = self._clock()
        start = now - (now % self.window)
        with self._lock:
            current = self._windows.get(key)
            if current is None or current.start != start:
                current = _Window(start=start, count=0)
                self._windows[key] = current
            current.count += 1
            if current.count > self.limit:
                return False, start + self.window - now
            return True, 0.0

    def prune(self) -> int:
        """Forget keys whose window has closed; returns how many were dropped."""
        now = self._clock()
        with self._lock:
            stale = [key for key, w in self._windows.items() if w.start + self.window <= now]
            for key in stale:
                del self._windows[key]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)
