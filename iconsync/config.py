"""
IconSync Repository
Introductory remarks: This module is part of the IconSync codebase.

Central configuration constants for the icon service.
"""

from __future__ import annotations

import re

# Collections ---------------------------------------------------------------

DEFAULT_NAMESPACE = "gd"
"""Namespace (Iconify prefix) served when a request does not name one."""

DEFAULT_AUTHOR = "GD Team"
"""Author advertised in the ``/collections`` listing."""

ICON_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{1,50}$")
"""Accepted icon names for uploads."""

MAX_UPLOAD_BYTES = 1024 * 1024
"""Largest accepted SVG upload."""

# Storage -------------------------------------------------------------------

DEFAULT_STORAGE_DIR = "/tmp/iconsync-icons"
"""Root directory for the file-based store when none is configured."""

DEFAULT_LOCK_TIMEOUT_SECONDS = 30.0
"""Longest a write waits for its per-key lock before failing with 503."""

# Cache ---------------------------------------------------------------------

DEFAULT_CACHE_TTL_SECONDS = 24 * 60 * 60
"""Lifetime of an assembled collection in the read-through cache."""

MIN_PUBLIC_MAX_AGE_SECONDS = 60 * 60
"""Lower bound for the ``max-age`` advertised outside development."""

# Figma sync ----------------------------------------------------------------

FIGMA_API_BASE_URL = "https://api.figma.com/v1"
"""Figma REST API root."""

FIGMA_REQUEST_TIMEOUT_SECONDS = 30.0
"""Timeout applied to every Figma call."""

SYNC_COMPONENT_DELAY_SECONDS = 0.1
"""Pause between successive component exports during a sync run."""
