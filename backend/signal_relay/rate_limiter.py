"""
Rate limiting for the webhook endpoint.

In-memory sliding window per client IP. Each worker process keeps its own
window, so the effective ceiling scales with the number of workers.
"""

import logging
import time
from collections import defaultdict
from typing import Callable, Dict, List

from signal_relay.exceptions import RateLimitError

logger = logging.getLogger(__name__)

_PRUNE_INTERVAL = 3600  # Prune stale entries every hour


class SlidingWindowRateLimiter:
    def __init__(self, max_requests: int, window_seconds: int, clock: Callable[[], float] = time.time):
        self._max = max_requests
        self._window = window_seconds
        self._clock = clock
        self._hits: Dict[str, List[float]] = defaultdict(list)
        self._last_prune_time = clock()

    def _prune(self, now: float):
        """Periodically remove IPs with no hits inside the window."""
        if now - self._last_prune_time < _PRUNE_INTERVAL:
            return
        self._last_prune_time = now
        stale_keys = [
            k for k, timestamps in self._hits.items()
            if not any(now - t < self._window for t in timestamps)
        ]
        for k in stale_keys:
            del self._hits[k]
        if stale_keys:
            logger.debug("Pruned %d stale rate limiter entries", len(stale_keys))

    def check(self, key: str):
        """Record a hit for key, raising RateLimitError when over the ceiling."""
        now = self._clock()
        self._prune(now)
        self._hits[key] = [t for t in self._hits[key] if now - t < self._window]

        if len(self._hits[key]) >= self._max:
            oldest = min(self._hits[key])
            retry_after = max(1, int(oldest + self._window - now))
            logger.warning(f"Rate limit exceeded for {key} (retry in {retry_after}s)")
            raise RateLimitError(
                "Too many requests from this IP, please try again later",
                retry_after=retry_after,
            )
        self._hits[key].append(now)

