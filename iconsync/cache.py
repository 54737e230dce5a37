"""
IconSync Repository
Introductory remarks: This module is part of the IconSync codebase.

Read-through cache of assembled collections plus HTTP validators.

Invalidation is always whole-namespace: any mutation of any icon drops the
cached collection and advances the namespace generation, so validators
issued before the mutation never match a response built after it.
"""

from __future__ import annotations

import hashlib
import json
import threading
import time
from dataclasses import dataclass
from email.utils import formatdate
from typing import Any, Callable, Dict, Optional

from iconsync.config import (DEFAULT_CACHE_TTL_SECONDS,
                             MIN_PUBLIC_MAX_AGE_SECONDS)
from iconsync.models import IconSet

DEVELOPMENT_CACHE_CONTROL = "no-cache, no-store, must-revalidate"


@dataclass(frozen=True)
class CacheValidator:
    """HTTP caching headers for one collection response."""

    cache_control: str
    etag: str
    last_modified: str

    def to_headers(self) -> Dict[str, str]:
        return {
            "Cache-Control": self.cache_control,
            "ETag": self.etag,
            "Last-Modified": self.last_modified,
        }


@dataclass
class _Entry:
    icon_set: IconSet
    expires_at: float


class CollectionCache:
    """TTL cache keyed by namespace."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        *,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive.")
        self._ttl = float(ttl_seconds)
        self._clock = clock or time.time
        self._lock = threading.Lock()
        self._entries: Dict[str, _Entry] = {}
        self._generations: Dict[str, int] = {}
        self._hits = 0
        self._misses = 0

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get_cached(self, namespace: str) -> Optional[IconSet]:
        """Return the cached collection or ``None`` when absent or expired."""
        with self._lock:
            entry = self._entries.get(namespace)
            if entry is None:
                self._misses += 1
                return None
            if entry.expires_at <= self._clock():
                del self._entries[namespace]
                self._misses += 1
                return None
            self._hits += 1
            return entry.icon_set

    def cache(
        self,
        namespace: str,
        icon_set: IconSet,
        *,
        generation: Optional[int] = None,
    ) -> bool:
        """Store ``icon_set`` unless the namespace changed since ``generation``.

        Readers pass the generation observed before loading, so a collection
        assembled across a concurrent mutation is never stored.
        """
        with self._lock:
            if (
                generation is not None
                and self._generations.get(namespace, 0) != generation
            ):
                return False
            self._entries[namespace] = _Entry(
                icon_set=icon_set,
                expires_at=self._clock() + self._ttl,
            )
            return True

    def invalidate(self, namespace: str, name: Optional[str] = None) -> None:
        """Drop ``namespace``; ``name`` is accepted but scoping stays per set."""
        with self._lock:
            self._entries.pop(namespace, None)
            self._generations[namespace] = self._generations.get(namespace, 0) + 1

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            for namespace in list(self._generations):
                self._generations[namespace] += 1

    def generation(self, namespace: str) -> int:
        with self._lock:
            return self._generations.get(namespace, 0)

    def validator(
        self, namespace: str, development: bool = False
    ) -> CacheValidator:
        """Build cache headers for the collection currently cached."""
        icon_set = self.get_cached(namespace)
        if icon_set is not None:
            etag = generate_etag(icon_set.to_dict())
        else:
            etag = generate_etag(
                {"namespace": namespace, "generation": self.generation(namespace)}
            )

        if icon_set is not None and icon_set.last_modified is not None:
            last_modified_seconds = icon_set.last_modified / 1000.0
        else:
            last_modified_seconds = self._clock()

        if development:
            cache_control = DEVELOPMENT_CACHE_CONTROL
        else:
            max_age = int(max(self._ttl, MIN_PUBLIC_MAX_AGE_SECONDS))
            cache_control = f"public, max-age={max_age}, immutable"

        return CacheValidator(
            cache_control=cache_control,
            etag=etag,
            last_modified=formatdate(last_modified_seconds, usegmt=True),
        )

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "hits": self._hits,
                "misses": self._misses,
                "keys": len(self._entries),
            }


def generate_etag(payload: Any) -> str:
    """Quoted MD5 of the canonical JSON encoding of ``payload``."""
    content = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return '"' + hashlib.md5(content.encode("utf-8")).hexdigest() + '"'
