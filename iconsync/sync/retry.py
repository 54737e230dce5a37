"""
Retry with exponential backoff for Figma calls.

Only failures classified as transient (network, timeout, rate limit, generic
API errors) are retried. Authentication and not-found failures, and any
exception that is not an :class:`ExternalSourceError`, fail immediately.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from iconsync.errors import ErrorCategory, ExternalSourceError

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Configuration for retry behavior.

    Attributes:
        max_retries: Retries after the first attempt
        initial_delay_ms: Delay before the first retry
        max_delay_ms: Cap on any single delay
    """

    max_retries: int = 3
    initial_delay_ms: float = 1000.0
    max_delay_ms: float = 10000.0

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1


DEFAULT_RETRY_POLICY = RetryPolicy()


def calculate_delay(attempt: int, policy: RetryPolicy) -> float:
    """Return the backoff in seconds after the 0-based ``attempt``."""
    delay_ms = min(policy.initial_delay_ms * (2 ** attempt), policy.max_delay_ms)
    return delay_ms / 1000.0


def categorize(exc: BaseException) -> ErrorCategory:
    if isinstance(exc, ExternalSourceError):
        return exc.category
    return ErrorCategory.UNKNOWN


def execute_with_retry(
    operation: Callable[[], T],
    name: str,
    policy: Optional[RetryPolicy] = None,
    *,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
    log: Optional[logging.Logger] = None,
) -> T:
    """Run ``operation`` until it succeeds or the failure is final.

    The last error is re-raised unchanged once retries are exhausted or the
    error category is not retryable.
    """
    policy = policy or DEFAULT_RETRY_POLICY
    log = log or logger
    started = clock()

    attempt = 0
    while True:
        if attempt > 0:
            log.info(
                "Retrying %s attempt=%d max_retries=%d",
                name,
                attempt,
                policy.max_retries,
            )
        try:
            result = operation()
        except Exception as exc:  # noqa: BLE001
            category = categorize(exc)
            elapsed_ms = (clock() - started) * 1000.0
            log.error(
                "%s failed attempt=%d category=%s elapsed_ms=%.0f error=%s",
                name,
                attempt,
                category.value,
                elapsed_ms,
                exc,
            )
            retryable = isinstance(exc, ExternalSourceError) and exc.retryable
            if not retryable or attempt >= policy.max_retries:
                log.error(
                    "%s failed permanently category=%s attempts=%d reason=%s",
                    name,
                    category.value,
                    attempt + 1,
                    "max retries exceeded" if retryable else "non-retryable error",
                )
                raise
            delay = calculate_delay(attempt, policy)
            log.info(
                "Waiting before retry operation=%s delay_s=%.2f next_attempt=%d",
                name,
                delay,
                attempt + 1,
            )
            sleep(delay)
            attempt += 1
            continue

        log.info(
            "%s succeeded attempt=%d category=none elapsed_ms=%.0f",
            name,
            attempt,
            (clock() - started) * 1000.0,
        )
        return result
