from __future__ import annotations

"""Client for the Figma REST API with rate limiting."""

import logging
from typing import Any, Dict, Iterable, Optional, Protocol, cast

import requests  # type: ignore[import]

from iconsync.clients.base_client import BaseClient
from iconsync.config import FIGMA_API_BASE_URL, FIGMA_REQUEST_TIMEOUT_SECONDS
from iconsync.errors import ErrorCategory, ExternalSourceError
from iconsync.net.rate_limiter import RateLimiter

DEFAULT_MAX_CALLS = 10
DEFAULT_PERIOD_SECONDS = 1.0
TOKEN_HEADER = "X-Figma-Token"


class _SessionWithGet(Protocol):
    def get(self, url: str, *args: Any, **kwargs: Any) -> Any:
        ...


def categorize_status(status_code: int) -> ErrorCategory:
    """Map an HTTP error status onto an :class:`ErrorCategory`."""
    if status_code in (401, 403):
        return ErrorCategory.AUTHENTICATION
    if status_code == 404:
        return ErrorCategory.NOT_FOUND
    if status_code == 429:
        return ErrorCategory.RATE_LIMIT
    return ErrorCategory.API


class FigmaClient(BaseClient[Any]):
    """Thin wrapper over the three Figma endpoints the sync needs.

    Every failure surfaces as :class:`ExternalSourceError` carrying a
    category, so retry decisions never inspect ``requests`` internals.
    """

    def __init__(
        self,
        token: str,
        *,
        rate_limiter: Optional[RateLimiter] = None,
        logger: Optional[logging.Logger] = None,
        session: Optional[_SessionWithGet] = None,
        base_url: str = FIGMA_API_BASE_URL,
        timeout: float = FIGMA_REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        limiter = rate_limiter or RateLimiter(
            max_calls=DEFAULT_MAX_CALLS,
            period_seconds=DEFAULT_PERIOD_SECONDS,
        )
        super().__init__(limiter, logger=logger)
        self._token = token
        self._session = cast(_SessionWithGet, session or requests.Session())
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def get_file(self, file_id: str) -> Dict[str, Any]:
        """Return the full document tree of ``file_id``."""
        url = f"{self._base_url}/files/{file_id}"
        payload = self._get_json(url, name="figma.get_file")
        if not isinstance(payload, dict) or "document" not in payload:
            raise ExternalSourceError(
                "Invalid Figma file structure",
                category=ErrorCategory.API,
                details={"fileId": file_id},
            )
        return payload

    def get_image_urls(
        self,
        file_id: str,
        ids: Iterable[str],
        fmt: str = "svg",
    ) -> Dict[str, Optional[str]]:
        """Resolve render URLs for node ``ids``."""
        url = f"{self._base_url}/images/{file_id}"
        params = {"ids": ",".join(ids), "format": fmt}
        payload = self._get_json(url, params=params, name="figma.get_image_urls")
        images = payload.get("images") if isinstance(payload, dict) else None
        if not isinstance(images, dict):
            raise ExternalSourceError(
                "Invalid response from Figma images API",
                category=ErrorCategory.API,
                details={"fileId": file_id},
            )
        return images

    def download_text(self, url: str) -> str:
        """Fetch a rendered asset; the URL is pre-signed, no token is sent."""

        def _operation() -> str:
            response = self._send(url, headers=None, params=None)
            return response.text

        text = self._execute_with_rate_limit(_operation, name="figma.download")
        if not isinstance(text, str) or not text:
            raise ExternalSourceError(
                "Invalid SVG content received",
                category=ErrorCategory.UNKNOWN,
                details={"url": url},
            )
        return text

    def _get_json(
        self,
        url: str,
        *,
        params: Optional[Dict[str, str]] = None,
        name: str,
    ) -> Any:
        def _operation() -> Any:
            response = self._send(
                url,
                headers={TOKEN_HEADER: self._token, "Accept": "application/json"},
                params=params,
            )
            try:
                return response.json()
            except ValueError as exc:
                raise ExternalSourceError(
                    f"Figma API returned invalid JSON from {url}",
                    category=ErrorCategory.API,
                    status_code=response.status_code,
                ) from exc

        return self._execute_with_rate_limit(_operation, name=name)

    def _send(
        self,
        url: str,
        *,
        headers: Optional[Dict[str, str]],
        params: Optional[Dict[str, str]],
    ) -> Any:
        try:
            response = self._session.get(
                url, headers=headers, params=params, timeout=self._timeout
            )
        except requests.Timeout as exc:
            raise ExternalSourceError(
                f"Figma request timed out: {exc}",
                category=ErrorCategory.TIMEOUT,
            ) from exc
        except requests.RequestException as exc:
            raise ExternalSourceError(
                f"Figma request failed: {exc}",
                category=ErrorCategory.NETWORK,
            ) from exc

        status = response.status_code
        if status >= 400:
            category = categorize_status(status)
            self._logger.error(
                "Figma API error response status=%s url=%s category=%s",
                status,
                url,
                category.value,
            )
            raise ExternalSourceError(
                f"Figma API returned {status}: {_short(response.text)}",
                category=category,
                status_code=status,
            )
        return response


def _short(text: Any, limit: int = 200) -> str:
    value = str(text or "")
    return value if len(value) <= limit else value[:limit] + "..."
