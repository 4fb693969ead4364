# pricematch/services/rate_limiter.py

"""Per-provider outbound rate limiting.

Callers are never rejected: ``acquire`` blocks until the sliding
window has room and the minimum spacing (plus jitter) has elapsed.
Slots are reserved under the lock and the sleep happens outside it, so
concurrent callers queue up behind each other instead of racing.
"""

import logging
import random
import threading
import time
from collections import deque

from pricematch.config.settings import Settings

logger = logging.getLogger("pricematch.rate_limiter")

_WINDOW_SECONDS = 60.0


class RateLimiter:
    """Sliding-window limiter with a minimum interval and random jitter."""

    def __init__(
        self,
        name: str = "default",
        requests_per_minute: int | None = None,
        min_interval: float | None = None,
        jitter: float | None = None,
    ) -> None:
        self.name = name
        self.requests_per_minute = (
            requests_per_minute
            if requests_per_minute is not None
            else Settings.RATE_LIMIT_PER_MINUTE
        )
        self.min_interval = (
            min_interval
            if min_interval is not None
            else Settings.MIN_REQUEST_INTERVAL
        )
        self.jitter = jitter if jitter is not None else Settings.REQUEST_JITTER
        self._calls: deque[float] = deque()
        self._last_call: float | None = None
        self._lock = threading.Lock()

    def _reserve(self) -> float:
        """Reserve the next slot and return how long to wait for it."""
        with self._lock:
            now = time.monotonic()
            while self._calls and self._calls[0] <= now - _WINDOW_SECONDS:
                self._calls.popleft()

            wait = 0.0
            if len(self._calls) >= self.requests_per_minute:
                oldest = self._calls[-self.requests_per_minute]
                wait = oldest + _WINDOW_SECONDS - now
            if self._last_call is not None:
                spacing = self._last_call + self.min_interval - now
                wait = max(wait, spacing)
                if self.jitter > 0:
                    wait = max(wait, 0.0) + random.uniform(0, self.jitter)
            wait = max(wait, 0.0)

            scheduled = now + wait
            self._calls.append(scheduled)
            self._last_call = scheduled
            return wait

    def acquire(self) -> float:
        """Block until a request may be sent. Returns seconds waited."""
        wait = self._reserve()
        if wait > 0:
            logger.debug(
                "[%s] Rate limiter waiting %.2fs", self.name, wait
            )
            time.sleep(wait)
        return wait


class RateLimiterRegistry:
    """One limiter per provider id, created on first use."""

    def __init__(self) -> None:
        self._limiters: dict[str, RateLimiter] = {}
        self._lock = threading.Lock()

    def get(self, provider_id: str) -> RateLimiter:
        """Return the limiter for *provider_id*."""
        with self._lock:
            limiter = self._limiters.get(provider_id)
            if limiter is None:
                limiter = RateLimiter(name=provider_id)
                self._limiters[provider_id] = limiter
            return limiter
