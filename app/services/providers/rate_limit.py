"""Token-bucket limiter guarding outbound provider calls."""

from __future__ import annotations

import time
from collections.abc import Callable
from threading import Lock


class RateLimitExceeded(RuntimeError):
    """Raised when no token becomes available before the wait deadline."""

    def __init__(self, message: str = "Provider rate limit exceeded") -> None:
        super().__init__(message)
        self.code = "RATE_LIMIT_EXCEEDED"


class TokenBucket:
    """Thread-safe token bucket refilled continuously at ``rate`` tokens per second."""

    def __init__(
        self,
        *,
        rate: float,
        capacity: int,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if rate <= 0:
            raise ValueError("rate must be positive.")
        if capacity < 1:
            raise ValueError("capacity must be at least 1.")
        self._rate = rate
        self._capacity = float(capacity)
        self._tokens = float(capacity)
        self._clock = clock
        self._sleep = sleep
        self._updated_at = clock()
        self._lock = Lock()

    @property
    def available(self) -> float:
        with self._lock:
            self._refill()
            return self._tokens

    def try_acquire(self) -> bool:
        with self._lock:
            self._refill()
            if self._tokens >= 1:
                self._tokens -= 1
                return True
            return False

    def acquire(self, timeout: float | None = None) -> None:
        """Block until a token is taken, or raise RateLimitExceeded after ``timeout`` seconds."""
        deadline = None if timeout is None else self._clock() + timeout
        while True:
            with self._lock:
                self._refill()
                if self._tokens >= 1:
                    self._tokens -= 1
                    return
                wait = (1 - self._tokens) / self._rate
            if deadline is not None:
                remaining = deadline - self._clock()
                if remaining <= 0:
                    raise RateLimitExceeded()
                wait = min(wait, remaining)
            self._sleep(wait)

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._updated_at)
        self._tokens = min(self._capacity, self._tokens + elapsed * self._rate)
        self._updated_at = now
