"""Domain model package exports."""

from .icons import (ConflictStrategy, IconData, IconSet, IconSetMetadata,
                    IconVersion, version_id_for, version_sort_key,
                    version_timestamp)
from .sync import (ComponentType, ExternalComponent, SyncError, SyncMode,
                   SyncResult)

__all__ = [
    "ComponentType",
    "ConflictStrategy",
    "ExternalComponent",
    "IconData",
    "IconSet",
    "IconSetMetadata",
    "IconVersion",
    "SyncError",
    "SyncMode",
    "SyncResult",
    "version_id_for",
    "version_sort_key",
    "version_timestamp",
]
