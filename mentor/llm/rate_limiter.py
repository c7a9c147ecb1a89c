"""
Token bucket admission control for outbound model calls.

The bucket refills lazily: every admission check first credits
``floor(elapsed * refill_rate)`` tokens (capped at capacity) and then moves
the refill timestamp to "now", whether or not anything accrued. Calls spaced
closer than ``1 / refill_rate`` seconds therefore never earn partial credit,
which biases the limiter against bursts.

The limiter never blocks or sleeps. A denied caller decides for itself
whether to report the rejection or wait and try again.
"""

from __future__ import annotations

import math
import threading
import time
from collections.abc import Callable


class TokenBucket:
    """
    Token bucket rate limiter.

    One instance is shared by every caller of a client, so the refill and
    decrement happen under a lock. ``try_consume`` never awaits, which also
    makes it atomic with respect to other coroutines on the same loop.

    Args:
        capacity: Maximum number of tokens (and the initial fill)
        refill_rate: Tokens credited per second; 0 disables refill
        clock: Monotonic time source in seconds (injectable for tests)
    """

    def __init__(
        self,
        capacity: int = 50,
        refill_rate: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if capacity < 0:
            raise ValueError(f"capacity must be >= 0, got {capacity}")
        if refill_rate < 0:
            raise ValueError(f"refill_rate must be >= 0, got {refill_rate}")

        self._capacity = capacity
        self._refill_rate = refill_rate
        self._clock = clock
        self._tokens = capacity
        self._last_refill = clock()
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def refill_rate(self) -> float:
        return self._refill_rate

    @property
    def tokens(self) -> int:
        """Tokens held as of the last admission check."""
        return self._tokens

    @property
    def available(self) -> int:
        """Tokens a check made right now would see, without consuming or refilling."""
        with self._lock:
            return self._projected(self._clock())

    def _projected(self, now: float) -> int:
        elapsed = max(0.0, now - self._last_refill)
        accrued = math.floor(elapsed * self._refill_rate)
        return min(self._capacity, self._tokens + accrued)

    def try_consume(self) -> bool:
        """
        Refill, then take one token if any are available.

        Returns:
            True if the call is admitted, False if the bucket is empty
        """
        with self._lock:
            now = self._clock()
            self._tokens = self._projected(now)
            self._last_refill = now

            if self._tokens >= 1:
                self._tokens -= 1
                return True
            return False

    def __repr__(self) -> str:
        return (
            f"TokenBucket(capacity={self._capacity}, refill_rate={self._refill_rate}, "
            f"tokens={self._tokens})"
        )
