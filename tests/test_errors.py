"""Tests for the structured error envelope."""

from __future__ import annotations

from iconsync.errors import (ConflictError, ErrorCategory, ExternalSourceError,
                             IconSyncError, MissingCredentialsError,
                             SVGParseError, StorageUnavailableError)


def test_error_envelope_shape() -> None:
    error = ConflictError("exists", details={"name": "home"})

    envelope = error.to_dict()["error"]

    assert envelope["code"] == "CONFLICT"
    assert envelope["message"] == "exists"
    assert envelope["details"] == {"name": "home"}
    assert isinstance(envelope["timestamp"], int)


def test_envelope_omits_empty_details() -> None:
    assert "details" not in IconSyncError("boom").to_dict()["error"]


def test_code_override_keeps_status() -> None:
    error = SVGParseError("no shapes", code="NO_RENDERABLE_CONTENT")

    assert error.code == "NO_RENDERABLE_CONTENT"
    assert error.status == 400
    assert SVGParseError("x").code == "INVALID_SVG"


def test_statuses() -> None:
    assert StorageUnavailableError("down").status == 503
    assert ExternalSourceError("bad gateway").status == 502
    assert MissingCredentialsError("missing").status == 400


def test_retryable_categories() -> None:
    retryable = {
        category
        for category in ErrorCategory
        if ExternalSourceError("x", category=category).retryable
    }

    assert retryable == {
        ErrorCategory.NETWORK,
        ErrorCategory.TIMEOUT,
        ErrorCategory.RATE_LIMIT,
        ErrorCategory.API,
    }
