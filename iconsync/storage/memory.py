"""In-memory icon store for development and tests."""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import Dict, List, Optional

from iconsync.models import IconData, IconSetMetadata, version_sort_key

from .keys import safe_segment


class InMemoryIconStore:
    """Dictionary-backed icon store."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._icons: Dict[str, Dict[str, IconData]] = defaultdict(dict)
        self._versions: Dict[tuple[str, str], Dict[str, IconData]] = (
            defaultdict(dict)
        )
        self._metadata: Dict[str, IconSetMetadata] = {}

    def initialize_namespace(self, namespace: str) -> None:
        safe_segment(namespace, field="namespace")
        with self._lock:
            self._icons.setdefault(namespace, {})

    def list_namespaces(self) -> List[str]:
        with self._lock:
            return sorted(self._metadata)

    def put(self, namespace: str, name: str, icon: IconData) -> None:
        safe_segment(name, field="name")
        self.initialize_namespace(namespace)
        with self._lock:
            self._icons[namespace][name] = icon

    def get(self, namespace: str, name: str) -> Optional[IconData]:
        with self._lock:
            return self._icons.get(namespace, {}).get(name)

    def delete(self, namespace: str, name: str) -> None:
        with self._lock:
            self._icons.get(namespace, {}).pop(name, None)

    def list(self, namespace: str) -> List[str]:
        with self._lock:
            return sorted(self._icons.get(namespace, {}))

    def put_metadata(self, namespace: str, metadata: IconSetMetadata) -> None:
        self.initialize_namespace(namespace)
        with self._lock:
            self._metadata[namespace] = metadata

    def get_metadata(self, namespace: str) -> Optional[IconSetMetadata]:
        with self._lock:
            return self._metadata.get(namespace)

    def put_version(
        self, namespace: str, name: str, version_id: str, icon: IconData
    ) -> None:
        safe_segment(version_id, field="version_id")
        with self._lock:
            self._versions[(namespace, name)][version_id] = icon

    def list_versions(self, namespace: str, name: str) -> List[str]:
        with self._lock:
            ids = list(self._versions.get((namespace, name), {}))
        return sorted(ids, key=version_sort_key)

    def get_version(
        self, namespace: str, name: str, version_id: str
    ) -> Optional[IconData]:
        with self._lock:
            return self._versions.get((namespace, name), {}).get(version_id)
