"""
IconSync Repository
Introductory remarks: This module is part of the IconSync codebase.

Error taxonomy shared by the parser, store, reconciler and HTTP layer.

Every error carries a stable ``code`` and the HTTP status the API boundary
reports for it.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Any, Dict, Optional


class IconSyncError(RuntimeError):
    """Base class for all structured failures."""

    code = "INTERNAL_SERVER_ERROR"
    status = 500

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "timestamp": int(time.time() * 1000),
        }
        if self.details:
            error["details"] = self.details
        return {"error": error}


class ValidationError(IconSyncError):
    """Raised when user input is malformed or unsupported."""

    code = "VALIDATION_ERROR"
    status = 400


class SVGParseError(ValidationError):
    """Raised when SVG input cannot be canonicalized."""

    code = "INVALID_SVG"


class PayloadTooLargeError(ValidationError):
    """Raised when an upload exceeds the accepted size."""

    code = "PAYLOAD_TOO_LARGE"
    status = 413


class ConflictError(IconSyncError):
    """Raised when a write collides with an existing name under ``reject``."""

    code = "CONFLICT"
    status = 409


class NotFoundError(IconSyncError):
    """Raised when a requested icon or collection does not exist."""

    code = "NOT_FOUND"
    status = 404


class VersionNotFoundError(NotFoundError):
    """Raised when a rollback targets an unknown version id."""

    code = "VERSION_NOT_FOUND"


class StorageError(IconSyncError):
    """Raised when a storage backend fails."""

    code = "STORAGE_ERROR"
    status = 500


class StorageUnavailableError(StorageError):
    """Raised when storage is temporarily unavailable (e.g. S3 outage)."""

    code = "STORAGE_UNAVAILABLE"
    status = 503


class ErrorCategory(str, Enum):
    """Classification of external source failures."""

    NETWORK = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT_ERROR"
    API = "API_ERROR"
    AUTHENTICATION = "AUTHENTICATION_ERROR"
    NOT_FOUND = "NOT_FOUND_ERROR"
    RATE_LIMIT = "RATE_LIMIT_ERROR"
    UNKNOWN = "UNKNOWN_ERROR"


RETRYABLE_CATEGORIES = frozenset(
    {
        ErrorCategory.NETWORK,
        ErrorCategory.TIMEOUT,
        ErrorCategory.RATE_LIMIT,
        ErrorCategory.API,
    }
)


class ExternalSourceError(IconSyncError):
    """Raised when the Figma API call fails."""

    code = "FIGMA_API_ERROR"
    status = 502

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code=code, details=details)
        self.category = category
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return self.category in RETRYABLE_CATEGORIES


class MissingCredentialsError(ExternalSourceError):
    """Raised when the Figma token or file id is absent."""

    code = "MISSING_CREDENTIALS"
    status = 400


class AuthenticationFailedError(ExternalSourceError):
    """Raised when Figma rejects the configured token."""

    code = "AUTH_FAILED"


class SourceNotFoundError(ExternalSourceError):
    """Raised when the configured Figma file does not exist."""

    code = "SOURCE_NOT_FOUND"
