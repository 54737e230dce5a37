"""
IconSync Repository
Introductory remarks: This module is part of the IconSync codebase.

Tests for the Figma REST client using a fake HTTP session.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest
import requests

from iconsync.clients import FigmaClient
from iconsync.errors import ErrorCategory, ExternalSourceError
from iconsync.net.rate_limiter import RateLimiter


class DummyRateLimiter(RateLimiter):
    def __init__(self) -> None:
        super().__init__(max_calls=1, period_seconds=1.0)
        self.calls = 0

    def acquire(self) -> float:  # type: ignore[override]
        self.calls += 1
        return 0.0


class DummyResponse:
    def __init__(
        self,
        status_code: int = 200,
        payload: Any = None,
        text: str = "",
    ) -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class DummySession:
    def __init__(self, responses: List[Any]) -> None:
        self._responses = list(responses)
        self.calls: List[Dict[str, Any]] = []

    def get(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        self.calls.append(
            {"url": url, "headers": headers, "params": params, "timeout": timeout}
        )
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _client(*responses: Any) -> tuple[FigmaClient, DummySession, DummyRateLimiter]:
    session = DummySession(list(responses))
    limiter = DummyRateLimiter()
    client = FigmaClient(
        "secret-token",
        rate_limiter=limiter,
        session=session,
        base_url="https://figma.test/v1/",
        timeout=5.0,
    )
    return client, session, limiter


def test_get_file_sends_token_header() -> None:
    document = {"document": {"id": "0:0", "children": []}, "components": {}}
    client, session, limiter = _client(DummyResponse(payload=document))

    assert client.get_file("FILE") == document
    call = session.calls[0]
    assert call["url"] == "https://figma.test/v1/files/FILE"
    assert call["headers"]["X-Figma-Token"] == "secret-token"
    assert call["timeout"] == 5.0
    assert limiter.calls == 1


def test_get_file_without_document_is_api_error() -> None:
    client, _, _ = _client(DummyResponse(payload={"name": "x"}))

    with pytest.raises(ExternalSourceError, match="Invalid Figma file structure") as excinfo:
        client.get_file("FILE")
    assert excinfo.value.category is ErrorCategory.API


def test_get_image_urls_joins_ids() -> None:
    """
    test_get_image_urls_joins_ids: Function description.
    :param:
    :returns:
    """

    images = {"1:2": "https://cdn.test/a.svg", "3:4": None}
    client, session, _ = _client(DummyResponse(payload={"images": images}))

    assert client.get_image_urls("FILE", ["1:2", "3:4"]) == images
    assert session.calls[0]["params"] == {"ids": "1:2,3:4", "format": "svg"}


def test_download_text_sends_no_token() -> None:
    client, session, _ = _client(DummyResponse(text="<svg></svg>"))

    assert client.download_text("https://cdn.test/a.svg") == "<svg></svg>"
    assert session.calls[0]["headers"] is None


def test_download_empty_body_is_unknown_error() -> None:
    client, _, _ = _client(DummyResponse(text=""))

    with pytest.raises(ExternalSourceError) as excinfo:
        client.download_text("https://cdn.test/a.svg")
    assert excinfo.value.category is ErrorCategory.UNKNOWN
    assert excinfo.value.retryable is False


@pytest.mark.parametrize(
    "status, category, retryable",
    [
        (401, ErrorCategory.AUTHENTICATION, False),
        (403, ErrorCategory.AUTHENTICATION, False),
        (404, ErrorCategory.NOT_FOUND, False),
        (429, ErrorCategory.RATE_LIMIT, True),
        (500, ErrorCategory.API, True),
    ],
)
def test_error_statuses_are_categorized(
    status: int, category: ErrorCategory, retryable: bool
) -> None:
    client, _, _ = _client(DummyResponse(status_code=status, text="nope"))

    with pytest.raises(ExternalSourceError) as excinfo:
        client.get_file("FILE")
    assert excinfo.value.category is category
    assert excinfo.value.status_code == status
    assert excinfo.value.retryable is retryable


def test_transport_failures_are_categorized() -> None:
    client, _, _ = _client(
        requests.Timeout("read timed out"),
        requests.ConnectionError("refused"),
    )

    with pytest.raises(ExternalSourceError) as timeout:
        client.get_file("FILE")
    with pytest.raises(ExternalSourceError) as network:
        client.get_file("FILE")

    assert timeout.value.category is ErrorCategory.TIMEOUT
    assert network.value.category is ErrorCategory.NETWORK


def test_invalid_json_is_api_error() -> None:
    client, _, _ = _client(DummyResponse(payload=None, text="<html>"))

    with pytest.raises(ExternalSourceError) as excinfo:
        client.get_file("FILE")
    assert excinfo.value.category is ErrorCategory.API
