"""Token-bucket rate limiting for byte reads.

Used by ``RateLimitedScanner`` to cap how fast bytes are pulled from
the underlying stream. One token is one byte.
"""

from __future__ import annotations

import logging
import threading
import time

from splitter.lib.constants import RATE_LIMIT_BURST_DIVISOR

logger = logging.getLogger(__name__)

__all__ = ["RateLimiter", "burst_for_rate"]

# Upper bound on one sleep so a long wait still re-checks the bucket.
MAX_SLEEP_SECONDS = 0.1


def burst_for_rate(bytes_per_second: float) -> int:
    """Burst capacity for a byte rate: a tenth of the rate, at least 1."""
    return max(int(bytes_per_second) // RATE_LIMIT_BURST_DIVISOR, 1)


class RateLimiter:
    """Token bucket refilled at ``rate`` tokens per second.

    Holds at most ``burst_size`` tokens. Safe to share between threads.

    Example:
        limiter = RateLimiter.for_byte_rate(1024)

        while True:
            limiter.acquire()  # Blocks until allowed
            b = stream.read(1)
    """

    def __init__(
        self,
        rate: float,
        *,
        burst_size: int | None = None,
    ) -> None:
        """Initialize rate limiter.

        Args:
            rate: Maximum sustained operations per second (must be > 0)
            burst_size: Maximum burst capacity (defaults to 1)
        """
        if rate <= 0:
            raise ValueError("rate must be > 0")
        self.rate = float(rate)
        self.burst_size = burst_size or 1
        self.tokens = float(self.burst_size)
        self.last_update = time.monotonic()
        self._lock = threading.Lock()

    @classmethod
    def for_byte_rate(cls, bytes_per_second: float) -> "RateLimiter":
        """Build a limiter for a byte rate using the standard burst rule."""
        burst = burst_for_rate(bytes_per_second)
        logger.debug("Rate limiter: %s bytes/s, burst %d", bytes_per_second, burst)
        return cls(bytes_per_second, burst_size=burst)

    def _take_token(self) -> float:
        """Take one token, or return the seconds until one is available."""
        with self._lock:
            now = time.monotonic()
            self.tokens = min(self.burst_size, self.tokens + (now - self.last_update) * self.rate)
            self.last_update = now

            if self.tokens >= 1:
                self.tokens -= 1
                return 0.0
            return (1 - self.tokens) / self.rate

    def acquire(self, timeout: float | None = None) -> bool:
        """Block until a token is taken.

        Args:
            timeout: Maximum time to wait (None = wait forever)

        Returns:
            True if a token was taken, False as soon as it is clear the
            next token will not arrive within ``timeout``
        """
        deadline = None if timeout is None else time.monotonic() + timeout

        while True:
            wait = self._take_token()
            if not wait:
                return True
            if deadline is not None and time.monotonic() + wait > deadline:
                return False
            time.sleep(min(wait, MAX_SLEEP_SECONDS))
