"""Shared helpers for logging incoming HTTP requests."""

from __future__ import annotations

from typing import Any


def log_request(logger, request: Any) -> None:
    """
    Emit a structured log line for the current Flask request.

    Multipart bodies are summarized by field name; raw bodies are
    truncated so large SVG uploads do not flood the log.
    """
    method = getattr(request, "method", None)
    path = getattr(request, "path", None)
    if not method and not path:
        return

    logger.info(
        "HTTP request method=%s path=%s query=%s remote=%s body=%s",
        method or "<unknown>",
        path or "",
        dict(getattr(request, "args", {}) or {}),
        getattr(request, "remote_addr", None),
        _body_preview(request),
    )


def _body_preview(request: Any) -> str:
    files = getattr(request, "files", None)
    if files:
        return "<multipart files=%s>" % ",".join(sorted(files.keys()))
    length = getattr(request, "content_length", None)
    if not length:
        return "<empty>"
    try:
        body = request.get_data(cache=True)
    except Exception:  # noqa: BLE001
        return "<unreadable>"
    try:
        decoded = body.decode("utf-8")
    except UnicodeDecodeError:
        return "<binary>"
    return _truncate(decoded)


def _truncate(value: str, *, limit: int = 512) -> str:
    if len(value) <= limit:
        return value
    return f"{value[:limit]}...<truncated>"
