"""
IconSync Repository
Introductory remarks: This module is part of the IconSync codebase.

File-based icon store (default backend and fallback target).

Layout under ``base_dir``::

    <namespace>/icons/<name>.json
    <namespace>/versions/<name>/<version_id>.json
    <namespace>/metadata.json
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional

from iconsync.errors import StorageError
from iconsync.models import IconData, IconSetMetadata, version_sort_key

from .keys import (ICONS_DIR, METADATA_FILE, RECORD_SUFFIX, VERSIONS_DIR,
                   decode_icon, decode_metadata, encode_icon, encode_metadata,
                   icon_key, metadata_key, safe_segment, strip_suffix,
                   version_dir_key, version_key)


class LocalIconStore:
    """Persist icons as JSON files on the local filesystem."""

    def __init__(
        self,
        base_dir: Path,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._base_dir = Path(base_dir)
        self._logger = logger or logging.getLogger(self.__class__.__name__)
        try:
            self._base_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(
                f"Failed to initialize storage at {self._base_dir}: {exc}"
            ) from exc

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def initialize_namespace(self, namespace: str) -> None:
        root = self._base_dir / safe_segment(namespace, field="namespace")
        try:
            (root / ICONS_DIR).mkdir(parents=True, exist_ok=True)
            (root / VERSIONS_DIR).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            self._logger.error(
                "Failed to initialize namespace=%s path=%s: %s",
                namespace,
                root,
                exc,
            )
            raise StorageError(
                f"Failed to initialize namespace '{namespace}': {exc}"
            ) from exc

    def list_namespaces(self) -> List[str]:
        try:
            return sorted(
                entry.name
                for entry in self._base_dir.iterdir()
                if entry.is_dir() and (entry / METADATA_FILE).exists()
            )
        except FileNotFoundError:
            return []

    def put(self, namespace: str, name: str, icon: IconData) -> None:
        self.initialize_namespace(namespace)
        self._write(self._base_dir / icon_key(namespace, name), encode_icon(icon))

    def get(self, namespace: str, name: str) -> Optional[IconData]:
        raw = self._read(self._base_dir / icon_key(namespace, name))
        return decode_icon(raw) if raw is not None else None

    def delete(self, namespace: str, name: str) -> None:
        path = self._base_dir / icon_key(namespace, name)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            self._logger.error(
                "Failed to delete icon namespace=%s name=%s path=%s: %s",
                namespace,
                name,
                path,
                exc,
            )
            raise StorageError(
                f"Failed to delete icon '{namespace}:{name}': {exc}"
            ) from exc

    def list(self, namespace: str) -> List[str]:
        icons_dir = (
            self._base_dir / safe_segment(namespace, field="namespace") / ICONS_DIR
        )
        return self._list_records(icons_dir, sort_key=None)

    def put_metadata(self, namespace: str, metadata: IconSetMetadata) -> None:
        self.initialize_namespace(namespace)
        self._write(
            self._base_dir / metadata_key(namespace), encode_metadata(metadata)
        )

    def get_metadata(self, namespace: str) -> Optional[IconSetMetadata]:
        raw = self._read(self._base_dir / metadata_key(namespace))
        return decode_metadata(raw) if raw is not None else None

    def put_version(
        self, namespace: str, name: str, version_id: str, icon: IconData
    ) -> None:
        path = self._base_dir / version_key(namespace, name, version_id)
        self._write(path, encode_icon(icon))

    def list_versions(self, namespace: str, name: str) -> List[str]:
        return self._list_records(
            self._base_dir / version_dir_key(namespace, name),
            sort_key=version_sort_key,
        )

    def get_version(
        self, namespace: str, name: str, version_id: str
    ) -> Optional[IconData]:
        raw = self._read(self._base_dir / version_key(namespace, name, version_id))
        return decode_icon(raw) if raw is not None else None

    def _list_records(self, directory: Path, *, sort_key) -> List[str]:
        try:
            names = [
                strip_suffix(entry.name)
                for entry in directory.iterdir()
                if entry.is_file() and entry.name.endswith(RECORD_SUFFIX)
            ]
        except FileNotFoundError:
            return []
        except OSError as exc:
            self._logger.error("Failed to list path=%s: %s", directory, exc)
            raise StorageError(f"Failed to list {directory}: {exc}") from exc
        return sorted(names, key=sort_key)

    def _read(self, path: Path) -> Optional[bytes]:
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            self._logger.error("Failed to read path=%s: %s", path, exc)
            raise StorageError(f"Failed to read {path}: {exc}") from exc

    def _write(self, path: Path, payload: bytes) -> None:
        """Replace ``path`` atomically via a sibling temp file."""
        tmp_name: Optional[str] = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
            )
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as exc:
            self._logger.error("Failed to write path=%s: %s", path, exc)
            raise StorageError(f"Failed to write {path}: {exc}") from exc
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
