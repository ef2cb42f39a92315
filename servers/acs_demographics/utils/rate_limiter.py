#!/usr/bin/env python3
"""Request budget for outbound Census API calls.

The limiter only paces requests. It never decides on its own that a request
has waited too long: the caller wraps ``acquire`` in the same deadline as the
HTTP call, so a queued request fails only when its own timeout expires.
"""

import asyncio
import time
from typing import Any, Callable, Dict


class TokenBucket:
    """Tokens refill continuously up to ``capacity``."""

    def __init__(
        self,
        capacity: int,
        refill_rate: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.capacity = capacity
        self.refill_rate = refill_rate
        self.tokens = float(capacity)
        self._clock = clock
        self._updated = clock()

    def _refill(self) -> None:
        now = self._clock()
        self.tokens = min(
            self.capacity, self.tokens + (now - self._updated) * self.refill_rate
        )
        self._updated = now

    def take(self, tokens: int = 1) -> float:
        """Take ``tokens`` if they are there.

        Returns 0.0 on success, otherwise the seconds until enough tokens
        will have refilled. Nothing is taken in that case.
        """
        self._refill()
        if self.tokens >= tokens:
            self.tokens -= tokens
            return 0.0
        return (tokens - self.tokens) / self.refill_rate

    def available(self) -> float:
        self._refill()
        return self.tokens


class RateLimiter:
    """Shared pacing in front of every Census API request.

    The defaults let two full dataset loads (about 150 requests each) run
    back to back without queueing.
    """

    def __init__(self, capacity: int = 500, refill_rate: float = 50.0):
        self.capacity = capacity
        self.refill_rate = refill_rate
        self._bucket = TokenBucket(capacity, refill_rate)
        self.queued_requests = 0

    async def acquire(self, tokens: int = 1) -> None:
        """Wait until ``tokens`` can be taken.

        There is no timeout here; cancel the awaiting task to give up.
        """
        delay = self._bucket.take(tokens)
        if delay:
            self.queued_requests += 1
        while delay:
            await asyncio.sleep(delay)
            delay = self._bucket.take(tokens)

    def retry_after(self, tokens: int = 1) -> float:
        """Seconds until ``tokens`` would be available."""
        missing = tokens - self._bucket.available()
        return max(0.0, missing / self.refill_rate)

    def get_status(self) -> Dict[str, Any]:
        return {
            "tokens_available": round(self._bucket.available(), 2),
            "capacity": self.capacity,
            "refill_rate": self.refill_rate,
            "queued_requests": self.queued_requests,
        }
