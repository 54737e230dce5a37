"""
IconSync Repository
Introductory remarks: This module is part of the IconSync codebase.

Token-bucket rate limiter for outbound API clients.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import Optional


class RateLimiter:
    """Allow at most ``max_calls`` operations per ``period_seconds``.

    Each :meth:`acquire` consumes one token; tokens refill continuously.
    The bucket starts full so a burst of ``max_calls`` goes through without
    waiting. Clock and sleep are injectable so tests never block.
    """

    def __init__(
        self,
        max_calls: int,
        period_seconds: float,
        *,
        time_fn: Optional[Callable[[], float]] = None,
        sleep_fn: Optional[Callable[[float], None]] = None,
    ) -> None:
        if max_calls <= 0:
            raise ValueError("max_calls must be positive.")
        if period_seconds <= 0:
            raise ValueError("period_seconds must be positive.")

        self._capacity = float(max_calls)
        self._seconds_per_token = float(period_seconds) / self._capacity
        self._time_fn = time_fn or time.monotonic
        self._sleep_fn = sleep_fn or time.sleep

        self._lock = threading.Lock()
        self._tokens = self._capacity
        self._last_refill = self._time_fn()

    def acquire(self) -> float:
        """Block until a token is available; return the total time waited."""
        waited = 0.0
        while True:
            with self._lock:
                self._refill(self._time_fn())
                if self._tokens >= 1.0:
                    self._tokens -= 1.0
                    return waited
                wait_time = (1.0 - self._tokens) * self._seconds_per_token

            # Sleep outside the lock so other threads can refill/check.
            self._sleep_fn(wait_time)
            waited += wait_time

    def _refill(self, now: float) -> None:
        elapsed = now - self._last_refill
        if elapsed <= 0:
            return
        self._tokens = min(
            self._capacity, self._tokens + elapsed / self._seconds_per_token
        )
        self._last_refill = now
