"""
Token bucket shared by the outbound PubMed throttle and the per-user limiter.

The bucket itself holds no lock and never sleeps; callers decide whether to
wait (outbound throttle) or to deny (user admission).
"""

import time
from typing import Callable


class TokenBucket:
    """Allows `capacity` takes immediately, then refills at `rate` tokens/second."""

    def __init__(
        self,
        capacity: float,
        rate: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.capacity = float(capacity)
        self.rate = rate
        self.tokens = float(capacity)
        self._clock = clock
        self.last_refill = clock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self.last_refill)
        self.tokens = min(self.capacity, self.tokens + elapsed * self.rate)
        self.last_refill = now

    def try_take(self) -> bool:
        self._refill()
        if self.tokens >= 1.0:
            self.tokens -= 1.0
            return True
        return False

    def seconds_until_token(self) -> float:
        """How long until one token is available (0 if one is available now)."""
        self._refill()
        if self.tokens >= 1.0:
            return 0.0
        if self.rate <= 0:
            return float("inf")
        return (1.0 - self.tokens) / self.rate
