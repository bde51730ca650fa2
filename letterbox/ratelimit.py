"""Per-connection token bucket."""
from __future__ import annotations

import time
from typing import Callable

from .constants import RATE_CAPACITY, RATE_REFILL_PER_SEC


class RateLimiter:
    """Continuous-refill token bucket.

    Tokens are recomputed from the elapsed time on every check rather than on
    a fixed tick, so fractional tokens carry over between messages.
    """

    def __init__(
        self,
        capacity: float = RATE_CAPACITY,
        refill_per_sec: float = RATE_REFILL_PER_SEC,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.capacity = capacity
        self.refill_per_sec = refill_per_sec
        self._clock = clock
        self.tokens = capacity
        self._last = clock()

    def allow(self) -> bool:
        """Consume one token; return *False* when the bucket is empty."""
        now = self._clock()
        self.tokens = min(self.capacity, self.tokens + (now - self._last) * self.refill_per_sec)
        self._last = now
        if self.tokens < 1:
            return False
        self.tokens -= 1
        return True


__all__ = ["RateLimiter"]
