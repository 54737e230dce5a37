from __future__ import annotations

"""Helpers for loading environment configuration."""

import logging
import os
from pathlib import Path
from typing import Optional, Tuple, Union

_ENV_LOADED = False

_LOGGER = logging.getLogger(__name__)

FIGMA_TOKEN_KEY = "FIGMA_API_TOKEN"
FIGMA_FILE_KEY = "FIGMA_FILE_ID"


def load_dotenv(dotenv_path: Union[str, Path] = ".env") -> None:
    """Load environment variables from a simple ``.env`` file if present."""
    global _ENV_LOADED
    if _ENV_LOADED:
        return

    path = Path(dotenv_path)
    if path.exists():
        for line in path.read_text().splitlines():
            parsed = _parse_line(line)
            if parsed:
                key, value = parsed
                os.environ.setdefault(key, value)

    _ENV_LOADED = True


def _parse_line(line: str) -> Optional[Tuple[str, str]]:
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None

    if "=" not in stripped:
        return None

    key, value = stripped.split("=", 1)
    return (key.strip(), value.strip().strip("'\""))


def _truthy(value: Optional[str]) -> bool:
    if value is None:
        return False
    lowered = value.strip().lower()
    return lowered in {"1", "true", "yes", "on"}


def is_development() -> bool:
    """Return True when HTTP caching should be disabled for local iteration.

    Controlled by ``ICONSYNC_ENV`` (``development``/``dev``) or the
    ``ICONSYNC_DEV`` flag.
    """

    load_dotenv()
    env_name = os.environ.get("ICONSYNC_ENV", "").strip().lower()
    if env_name in {"development", "dev"}:
        return True
    return _truthy(os.environ.get("ICONSYNC_DEV"))


def figma_credentials() -> Tuple[str, str]:
    """Return the configured ``(token, file_id)`` pair; blanks when unset."""

    load_dotenv()
    token = os.environ.get(FIGMA_TOKEN_KEY, "").strip()
    file_id = os.environ.get(FIGMA_FILE_KEY, "").strip()
    return token, file_id


def describe_figma_configuration() -> Tuple[bool, bool, str]:
    """Return ``(enabled, valid, message)`` for the Figma integration."""

    token, file_id = figma_credentials()
    if not token and not file_id:
        return (
            False,
            True,
            "Figma integration is disabled (no credentials configured)",
        )
    if not token:
        return (
            True,
            False,
            f"Figma integration is partially configured: {FIGMA_TOKEN_KEY} "
            "is missing",
        )
    if not file_id:
        return (
            True,
            False,
            f"Figma integration is partially configured: {FIGMA_FILE_KEY} "
            "is missing",
        )
    return True, True, "Figma integration is enabled and configured"


def log_figma_configuration() -> None:
    """Log the Figma integration status once at startup."""

    enabled, valid, message = describe_figma_configuration()
    if enabled and valid:
        _LOGGER.info("Figma integration status: ENABLED")
    elif enabled:
        _LOGGER.warning("Figma integration status: MISCONFIGURED (%s)", message)
    else:
        _LOGGER.info("Figma integration status: DISABLED (%s)", message)
