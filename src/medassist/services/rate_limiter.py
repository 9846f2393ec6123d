"""
Per-user admission control.

Each user gets a token bucket (capacity = burst, refill = rpm / 3600 tokens
per second) plus a rolling one-hour ceiling. Denial is immediate; nothing is
queued or retried here.
"""

import logging
import threading
import time
from collections import deque
from typing import Callable

from pydantic import BaseModel

from medassist.utils.token_bucket import TokenBucket

logger = logging.getLogger(__name__)

HOUR_SECONDS = 3600.0


class RateLimitSettings(BaseModel):
    enabled: bool = True
    requests_per_minute: int = 60
    requests_per_hour: int = 500
    burst_capacity: int = 10

    @property
    def refill_per_second(self) -> float:
        return self.requests_per_minute / HOUR_SECONDS


class _UserBucket:
    def __init__(self, settings: RateLimitSettings, clock: Callable[[], float]):
        self.bucket = TokenBucket(settings.burst_capacity, settings.refill_per_second, clock)
        self.admitted: deque[float] = deque()
        self.lock = threading.Lock()


class RateLimiter:
    """Token bucket per user, created lazily and kept for the process lifetime."""

    def __init__(
        self,
        settings: RateLimitSettings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings or RateLimitSettings()
        self._clock = clock
        self._buckets: dict[str, _UserBucket] = {}

    def _bucket_for(self, user_id: str) -> _UserBucket:
        bucket = self._buckets.get(user_id)
        if bucket is None:
            # setdefault keeps the first bucket if two callers race here
            bucket = self._buckets.setdefault(user_id, _UserBucket(self.settings, self._clock))
        return bucket

    def admit(self, user_id: str) -> bool:
        """Return True if the user may make a request now."""
        if not self.settings.enabled:
            return True

        user = self._bucket_for(user_id)
        with user.lock:
            now = self._clock()
            while user.admitted and now - user.admitted[0] >= HOUR_SECONDS:
                user.admitted.popleft()

            if len(user.admitted) >= self.settings.requests_per_hour:
                logger.info("Hourly ceiling reached for user %s", user_id)
                return False
            if not user.bucket.try_take():
                logger.info("Burst capacity exhausted for user %s", user_id)
                return False

            user.admitted.append(now)
            return True

    def __len__(self) -> int:
        return len(self._buckets)
