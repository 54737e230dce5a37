"""Abstract repository interface for icon persistence."""

from __future__ import annotations

from typing import List, Optional, Protocol

from iconsync.models import IconData, IconSetMetadata


class IconStore(Protocol):
    """Key-value persistence for current icons, metadata and versions.

    Every key is a ``(namespace, name)`` pair. Single-key writes are atomic;
    multi-key consistency is the caller's job.
    """

    def initialize_namespace(self, namespace: str) -> None:
        """Create whatever backing structure ``namespace`` needs."""

    def list_namespaces(self) -> List[str]:
        """Return namespaces that have persisted metadata, sorted."""

    def put(self, namespace: str, name: str, icon: IconData) -> None:
        """Create or replace the current icon."""

    def get(self, namespace: str, name: str) -> Optional[IconData]:
        """Return the current icon or ``None`` when absent."""

    def delete(self, namespace: str, name: str) -> None:
        """Remove the current icon; a no-op when it does not exist."""

    def list(self, namespace: str) -> List[str]:
        """Return a sorted snapshot of current icon names."""

    def put_metadata(self, namespace: str, metadata: IconSetMetadata) -> None:
        """Replace the namespace metadata record."""

    def get_metadata(self, namespace: str) -> Optional[IconSetMetadata]:
        """Return the namespace metadata or ``None``."""

    def put_version(
        self, namespace: str, name: str, version_id: str, icon: IconData
    ) -> None:
        """Persist an immutable snapshot under ``version_id``."""

    def list_versions(self, namespace: str, name: str) -> List[str]:
        """Return snapshot ids for ``name``, oldest first."""

    def get_version(
        self, namespace: str, name: str, version_id: str
    ) -> Optional[IconData]:
        """Return a snapshot or ``None`` when the id is unknown."""
