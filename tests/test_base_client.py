"""Tests for the rate-limited base client."""

from __future__ import annotations

import logging
from typing import Any, List

import pytest

from iconsync.clients import BaseClient
from iconsync.net.rate_limiter import RateLimiter


class DummyRateLimiter(RateLimiter):
    def __init__(self, waited: float = 0.0) -> None:
        super().__init__(max_calls=1, period_seconds=1.0)
        self.calls: List[None] = []
        self._waited = waited

    def acquire(self) -> float:  # type: ignore[override]
        self.calls.append(None)
        return self._waited


class SampleClient(BaseClient[Any]):
    def get_value(self) -> int:
        return self._execute_with_rate_limit(lambda: 42, name="get_value")

    def explode(self) -> None:
        def _fail() -> None:
            raise RuntimeError("boom")

        self._execute_with_rate_limit(_fail)


def test_base_client_executes_operation_and_observes_rate_limit() -> None:
    limiter = DummyRateLimiter()
    client = SampleClient(limiter)

    assert client.get_value() == 42
    assert len(limiter.calls) == 1


def test_base_client_logs_latency_and_delay(
    caplog: pytest.LogCaptureFixture,
) -> None:
    limiter = DummyRateLimiter(waited=0.25)
    logger = logging.getLogger("test_base_client_logger")
    logger.setLevel(logging.DEBUG)
    client = SampleClient(limiter, logger=logger)

    with caplog.at_level(logging.DEBUG, logger="test_base_client_logger"):
        client.get_value()

    assert any("delayed operation=get_value" in m for m in caplog.messages)
    assert any("Operation get_value completed" in m for m in caplog.messages)


def test_base_client_propagates_operation_errors() -> None:
    client = SampleClient(DummyRateLimiter())

    with pytest.raises(RuntimeError, match="boom"):
        client.explode()
