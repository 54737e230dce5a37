"""
IconSync Repository
Introductory remarks: This module is part of the IconSync codebase.

Select the icon store backend from the environment.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Optional

from iconsync.config import DEFAULT_STORAGE_DIR
from iconsync.errors import IconSyncError
from iconsync.utils.env import load_dotenv

from .base import IconStore
from .local_store import LocalIconStore
from .memory import InMemoryIconStore
from .s3_store import S3IconStore

_LOGGER = logging.getLogger(__name__)


def build_icon_store_from_env(
    *,
    client: Any | None = None,
    logger: Optional[logging.Logger] = None,
) -> IconStore:
    """Return the configured store, degrading to the local filesystem.

    ``ICON_STORAGE_BACKEND`` selects ``local`` (default), ``s3`` or
    ``memory``. A networked backend that cannot be reached at startup is
    replaced by :class:`LocalIconStore` with a warning.
    """

    load_dotenv()
    log = logger or _LOGGER
    backend = os.environ.get("ICON_STORAGE_BACKEND", "local").strip().lower()

    if backend == "memory":
        log.info("Using in-memory icon storage")
        return InMemoryIconStore()

    if backend == "s3":
        bucket = os.environ.get("ICON_STORAGE_BUCKET", "").strip()
        prefix = os.environ.get("ICON_STORAGE_PREFIX", "")
        try:
            store = S3IconStore(bucket, prefix=prefix, client=client)
            store.probe()
        except IconSyncError as exc:
            log.warning(
                "S3 icon storage unavailable bucket=%s, falling back to "
                "filesystem storage: %s",
                bucket or "<unset>",
                exc,
            )
        else:
            log.info("Using S3 icon storage bucket=%s prefix=%s", bucket, prefix)
            return store
    elif backend != "local":
        log.warning(
            "Unknown ICON_STORAGE_BACKEND=%s, using filesystem storage",
            backend,
        )

    storage_dir = _resolve_local_storage_dir()
    log.info("Using filesystem icon storage path=%s", storage_dir)
    return LocalIconStore(storage_dir)


def _resolve_local_storage_dir() -> Path:
    return Path(os.environ.get("ICON_STORAGE_PATH") or DEFAULT_STORAGE_DIR)
