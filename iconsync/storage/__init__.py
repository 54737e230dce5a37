"""Storage backends for icons, metadata and version history."""

from .atomic_update import (AtomicUpdateError, AtomicUpdateGroup,
                            LockTimeoutError, find_exception_in_chain)
from .base import IconStore
from .factory import build_icon_store_from_env
from .local_store import LocalIconStore
from .memory import InMemoryIconStore
from .s3_store import S3IconStore

__all__ = [
    "AtomicUpdateError",
    "AtomicUpdateGroup",
    "IconStore",
    "InMemoryIconStore",
    "LocalIconStore",
    "LockTimeoutError",
    "S3IconStore",
    "build_icon_store_from_env",
    "find_exception_in_chain",
]
