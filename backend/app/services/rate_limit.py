"""
Process-local request throttling for crawled sites and paid APIs.

Counters live in memory and reset on restart.
"""

from __future__ import annotations

import asyncio
import threading
import time
from typing import Callable, Dict


class DomainRateLimiter:
    """
    Per-domain request window.

    Up to ``max_per_minute`` requests pass freely inside a one-minute window;
    after that each request waits until ``min_delay_seconds`` have passed
    since the previous one.
    """

    def __init__(
        self,
        *,
        max_per_minute: int,
        min_delay_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_per_minute = max_per_minute
        self.min_delay_seconds = min_delay_seconds
        self._clock = clock
        self._state: Dict[str, tuple[float, int]] = {}
        self._lock = threading.Lock()

    def delay_for(self, domain: str) -> float:
        entry = self._state.get(domain)
        if entry is None:
            return 0.0
        last, count = entry
        elapsed = self._clock() - last
        if elapsed < 60 and count >= self.max_per_minute:
            return max(0.0, self.min_delay_seconds - elapsed)
        return 0.0

    def record(self, domain: str) -> None:
        with self._lock:
            now = self._clock()
            last, count = self._state.get(domain, (now, 0))
            if now - last >= 60:
                count = 0
            self._state[domain] = (now, count + 1)

    async def acquire(self, domain: str) -> float:
        """Wait if needed, then count the request. Returns the seconds waited."""
        delay = self.delay_for(domain)
        if delay > 0:
            await asyncio.sleep(delay)
        self.record(domain)
        return delay


class HourlyQuota:
    """Fixed one-hour windows of allowed calls per service name."""

    def __init__(
        self,
        limits: Dict[str, int],
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.limits = dict(limits)
        self._clock = clock
        self._windows: Dict[str, tuple[float, int]] = {}
        self._lock = threading.Lock()

    def try_acquire(self, service: str) -> bool:
        limit = self.limits.get(service)
        if limit is None:
            return True
        with self._lock:
            now = self._clock()
            started, count = self._windows.get(service, (now, 0))
            if now - started >= 3600:
                started, count = now, 0
            if count >= limit:
                self._windows[service] = (started, count)
                return False
            self._windows[service] = (started, count + 1)
            return True

    def remaining(self, service: str) -> int | None:
        limit = self.limits.get(service)
        if limit is None:
            return None
        started, count = self._windows.get(service, (self._clock(), 0))
        if self._clock() - started >= 3600:
            return limit
        return max(0, limit - count)
