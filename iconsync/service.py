"""
IconSync Repository
Introductory remarks: This module is part of the IconSync codebase.

Application boundary wiring manager, cache and reconciler.

Transport-neutral: the Flask blueprint and the CLI both call into
:class:`IconService`. Every successful mutation invalidates the affected
namespace before returning.
"""

from __future__ import annotations

import dataclasses
import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from iconsync.cache import CacheValidator, CollectionCache, generate_etag
from iconsync.config import (DEFAULT_AUTHOR, DEFAULT_CACHE_TTL_SECONDS,
                             DEFAULT_NAMESPACE, ICON_NAME_PATTERN,
                             MAX_UPLOAD_BYTES)
from iconsync.errors import (IconSyncError, NotFoundError,
                             PayloadTooLargeError, ValidationError)
from iconsync.manager import IconSetManager
from iconsync.models import ConflictStrategy, IconSet, SyncMode
from iconsync.storage import build_icon_store_from_env
from iconsync.sync import FigmaReconciler
from iconsync.utils.env import figma_credentials, is_development


@dataclass(frozen=True)
class CachedResponse:
    """A read result plus the validator that goes with it."""

    payload: Optional[Dict[str, Any]]
    validator: CacheValidator
    not_modified: bool = False


class IconService:
    """Read, mutation, version and sync operations over one icon library."""

    def __init__(
        self,
        manager: IconSetManager,
        cache: CollectionCache,
        *,
        reconciler_factory: Optional[Callable[[], FigmaReconciler]] = None,
        credentials: Optional[Callable[[], Tuple[str, str]]] = None,
        development: Optional[bool] = None,
        default_namespace: str = DEFAULT_NAMESPACE,
        clock: Callable[[], float] = time.time,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._manager = manager
        self._cache = cache
        self._reconciler_factory = reconciler_factory or FigmaReconciler
        self._credentials = credentials or figma_credentials
        self._development = (
            is_development() if development is None else development
        )
        self._default_namespace = default_namespace
        self._clock = clock
        self._started_at = clock()
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    @property
    def manager(self) -> IconSetManager:
        return self._manager

    @property
    def cache(self) -> CollectionCache:
        return self._cache

    @property
    def default_namespace(self) -> str:
        return self._default_namespace

    # Read path --------------------------------------------------------------

    def validator(self, namespace: str) -> CacheValidator:
        """Validator for the stored collection, populating the cache first."""
        self._read_through(namespace)
        return self._cache.validator(namespace, self._development)

    def collections(self, if_none_match: Optional[str] = None) -> CachedResponse:
        """Summaries of every known namespace, keyed by prefix."""
        namespaces = set(self._manager.list_namespaces())
        namespaces.add(self._default_namespace)
        payload: Dict[str, Any] = {}
        for namespace in sorted(namespaces):
            icon_set = self._read_through(namespace)
            metadata = self._manager.get_metadata(namespace)
            payload[namespace] = {
                "name": metadata.name if metadata else namespace,
                "total": len(icon_set.icons),
                "version": metadata.version if metadata else None,
                "lastModified": icon_set.last_modified,
                "author": (metadata.author if metadata else None)
                or DEFAULT_AUTHOR,
            }
        validator = dataclasses.replace(
            self._cache.validator(self._default_namespace, self._development),
            etag=generate_etag(payload),
        )
        return self._respond(payload, validator, if_none_match)

    def get_collection(
        self, namespace: str, if_none_match: Optional[str] = None
    ) -> CachedResponse:
        """The whole collection for ``namespace``."""
        namespace = self._require_namespace(namespace)
        icon_set = self._read_through(namespace)
        validator = self._cache.validator(namespace, self._development)
        if _matches(if_none_match, validator):
            return CachedResponse(None, validator, not_modified=True)
        if not icon_set.icons:
            raise NotFoundError(f'Icon set with prefix "{namespace}" not found')
        return CachedResponse(icon_set.to_dict(), validator)

    def get_icons(
        self,
        namespace: str,
        names: Optional[Iterable[str]] = None,
        if_none_match: Optional[str] = None,
    ) -> CachedResponse:
        """Selected icons of ``namespace``; all of them when ``names`` is empty."""
        wanted = [name for name in (names or []) if name]
        if not wanted:
            return self.get_collection(namespace, if_none_match)
        namespace = self._require_namespace(namespace)
        icon_set = self._read_through(namespace)
        validator = self._cache.validator(namespace, self._development)
        if _matches(if_none_match, validator):
            return CachedResponse(None, validator, not_modified=True)
        if not icon_set.icons:
            raise NotFoundError(f'Icon set with prefix "{namespace}" not found')
        subset = icon_set.subset(wanted)
        if not subset.icons:
            raise NotFoundError("None of the requested icons were found")
        return CachedResponse(subset.to_dict(), validator)

    def get_icons_by_reference(
        self,
        references: Iterable[str],
        if_none_match: Optional[str] = None,
    ) -> CachedResponse:
        """Icons addressed as ``namespace:name`` across namespaces."""
        references = list(references)
        grouped: Dict[str, List[str]] = {}
        for reference in references:
            parts = reference.strip().split(":")
            # Malformed references are skipped.
            if len(parts) != 2 or not all(parts):
                continue
            grouped.setdefault(parts[0], []).append(parts[1])
        if not grouped:
            raise ValidationError(
                "Icons must be given as namespace:name pairs",
                details={"references": list(references)},
            )

        payload: Dict[str, Any] = {}
        for namespace, names in grouped.items():
            subset = self._read_through(
                self._require_namespace(namespace)
            ).subset(names)
            if subset.icons:
                payload[namespace] = subset.to_dict()

        first_namespace = next(iter(grouped))
        validator = dataclasses.replace(
            self._cache.validator(first_namespace, self._development),
            etag=generate_etag(payload),
        )
        if _matches(if_none_match, validator):
            return CachedResponse(None, validator, not_modified=True)
        if not payload:
            raise NotFoundError("None of the requested icons were found")
        return CachedResponse(payload, validator)

    # Mutation path ----------------------------------------------------------

    def upload(
        self,
        namespace: Optional[str],
        name: Optional[str],
        raw: bytes | str,
        strategy: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Validate and store one uploaded SVG."""
        if not name:
            raise ValidationError(
                "Icon name is required. Provide it in the request body or "
                'query parameter "name"'
            )
        if not ICON_NAME_PATTERN.match(name):
            raise ValidationError(
                "Invalid icon name format. Name must contain only letters, "
                "numbers, hyphens, and underscores (1-50 characters)",
                details={"iconName": name, "pattern": ICON_NAME_PATTERN.pattern},
            )
        namespace = self._require_namespace(namespace or self._default_namespace)

        content = raw.encode("utf-8") if isinstance(raw, str) else bytes(raw)
        size = len(content)
        if size == 0:
            raise ValidationError(
                "No file uploaded. Please provide an SVG file with the field "
                'name "icon"'
            )
        if size > MAX_UPLOAD_BYTES:
            raise PayloadTooLargeError(
                "File size exceeds the maximum limit of 1MB",
                details={"size": size, "limit": MAX_UPLOAD_BYTES},
            )
        try:
            svg = content.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ValidationError("SVG file must be UTF-8 encoded") from exc
        trimmed = svg.strip()
        if not trimmed.startswith(("<svg", "<?xml")):
            raise ValidationError(
                "Invalid SVG file. File must contain valid SVG content"
            )

        try:
            conflict_strategy = ConflictStrategy.parse(strategy)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

        self._manager.add_icon(namespace, name, svg, conflict_strategy)
        self._cache.invalidate(namespace, name)
        self._logger.info(
            "Icon uploaded namespace=%s name=%s size=%d strategy=%s",
            namespace,
            name,
            size,
            strategy,
        )
        return {
            "success": True,
            "message": "Icon uploaded successfully",
            "data": {"namespace": namespace, "name": name, "size": size},
        }

    def delete(self, namespace: str, name: str) -> Dict[str, Any]:
        namespace = self._require_namespace(namespace)
        if not name:
            raise ValidationError("Both namespace and icon name are required")
        if self._manager.get_icon(namespace, name) is None:
            raise NotFoundError(
                f'Icon "{name}" not found in namespace "{namespace}"'
            )
        self._manager.remove_icon(namespace, name)
        self._cache.invalidate(namespace, name)
        self._logger.info("Icon deleted namespace=%s name=%s", namespace, name)
        return {
            "success": True,
            "message": "Icon deleted successfully",
            "data": {"namespace": namespace, "name": name},
        }

    # Version path -----------------------------------------------------------

    def list_versions(self, namespace: str, name: str) -> Dict[str, Any]:
        """Version history of ``name``, newest first."""
        namespace = self._require_namespace(namespace)
        history = self._manager.get_version_history(namespace, name)
        if not history and self._manager.get_icon(namespace, name) is None:
            raise NotFoundError(
                f'Icon "{name}" not found in namespace "{namespace}"'
            )
        return {
            "namespace": namespace,
            "name": name,
            "versions": [version.to_dict() for version in history],
        }

    def rollback(
        self, namespace: str, name: str, version_id: str
    ) -> Dict[str, Any]:
        namespace = self._require_namespace(namespace)
        icon = self._manager.rollback_to_version(namespace, name, version_id)
        self._cache.invalidate(namespace, name)
        self._logger.info(
            "Icon rolled back namespace=%s name=%s version=%s",
            namespace,
            name,
            version_id,
        )
        return {
            "success": True,
            "message": "Icon rolled back successfully",
            "data": {
                "namespace": namespace,
                "name": name,
                "versionId": version_id,
                "icon": icon.to_dict(),
            },
        }

    # Sync path --------------------------------------------------------------

    def sync(
        self,
        namespace: Optional[str] = None,
        mode: Optional[str | SyncMode] = None,
        icons_only: bool = False,
    ) -> Dict[str, Any]:
        """Pull the configured Figma file into ``namespace``."""
        try:
            sync_mode = mode if isinstance(mode, SyncMode) else SyncMode.parse(mode)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        namespace = self._require_namespace(namespace or self._default_namespace)

        token, file_id = self._credentials()
        if not token or not file_id:
            self._logger.error(
                "Figma sync requested but credentials not configured "
                "has_token=%s has_file_id=%s",
                bool(token),
                bool(file_id),
            )
            raise ValidationError(
                "Figma integration is not configured. Please set "
                "FIGMA_API_TOKEN and FIGMA_FILE_ID environment variables"
            )

        self._logger.info(
            "Starting Figma sync namespace=%s mode=%s file_id=%s",
            namespace,
            sync_mode.value,
            file_id,
        )
        reconciler = self._reconciler_factory()
        reconciler.connect(token, file_id)
        result = reconciler.sync(
            self._manager, namespace, sync_mode, icons_only=icons_only
        )
        if result.success_count > 0:
            self._cache.invalidate(namespace)

        return {
            "success": True,
            "message": f"Figma sync completed ({sync_mode.value} mode)",
            "data": {
                "syncMode": sync_mode.value,
                "namespace": namespace,
                **result.to_dict(),
            },
        }

    # Diagnostics ------------------------------------------------------------

    def health(self, *, check_figma: bool = True) -> Tuple[Dict[str, Any], int]:
        """Readiness report and the HTTP status that goes with it."""
        checks: Dict[str, str] = {}
        stats: Dict[str, Any] = {
            "uptime": int(self._clock() - self._started_at),
        }
        status = "healthy"

        try:
            icon_set = self._manager.load_icon_set(self._default_namespace)
        except IconSyncError as exc:
            checks["storage"] = "error"
            stats["totalIcons"] = 0
            status = "degraded"
            self._logger.warning("Health check: storage check failed: %s", exc)
        else:
            checks["storage"] = "ok"
            stats["totalIcons"] = len(icon_set.icons)

        checks["cache"] = "ok"
        stats["cache"] = self._cache.stats()

        token, file_id = self._credentials()
        if not (token and file_id):
            checks["figma"] = "not_configured"
        elif not check_figma:
            checks["figma"] = "configured"
        else:
            try:
                self._reconciler_factory().connect(token, file_id)
            except IconSyncError as exc:
                checks["figma"] = "error"
                self._logger.warning(
                    "Health check: Figma connection check failed: %s", exc
                )
            else:
                checks["figma"] = "ok"

        payload = {
            "status": status,
            "timestamp": int(self._clock() * 1000),
            "checks": checks,
            "stats": stats,
        }
        return payload, 200 if status == "healthy" else 503

    def clear_cache(self, namespace: Optional[str] = None) -> Dict[str, Any]:
        if namespace:
            self._cache.invalidate(namespace)
            self._logger.info("Cache cleared namespace=%s", namespace)
            return {
                "success": True,
                "message": f"Cache cleared for namespace: {namespace}",
            }
        self._cache.clear()
        self._logger.info("All caches cleared")
        return {"success": True, "message": "All caches cleared"}

    # Internals --------------------------------------------------------------

    def _read_through(self, namespace: str) -> IconSet:
        icon_set = self._cache.get_cached(namespace)
        if icon_set is None:
            generation = self._cache.generation(namespace)
            icon_set = self._manager.load_icon_set(namespace)
            if not self._cache.cache(namespace, icon_set, generation=generation):
                self._logger.debug(
                    "Skipped stale cache fill namespace=%s", namespace
                )
        return icon_set

    def _require_namespace(self, namespace: Optional[str]) -> str:
        if not namespace:
            raise ValidationError("Missing required query parameter: prefix")
        if not ICON_NAME_PATTERN.match(namespace):
            raise ValidationError(
                f"Invalid namespace '{namespace}'",
                details={"namespace": namespace},
            )
        return namespace

    def _respond(
        self,
        payload: Dict[str, Any],
        validator: CacheValidator,
        if_none_match: Optional[str],
    ) -> CachedResponse:
        if _matches(if_none_match, validator):
            return CachedResponse(None, validator, not_modified=True)
        return CachedResponse(payload, validator)


def _matches(if_none_match: Optional[str], validator: CacheValidator) -> bool:
    if not if_none_match:
        return False
    candidates = {tag.strip() for tag in if_none_match.split(",")}
    return validator.etag in candidates or "*" in candidates


def build_service_from_env(*, logger: Optional[logging.Logger] = None) -> IconService:
    """Wire an :class:`IconService` from environment configuration."""
    store = build_icon_store_from_env(logger=logger)
    ttl_raw = os.environ.get("ICON_CACHE_TTL", "").strip()
    try:
        ttl = float(ttl_raw) if ttl_raw else DEFAULT_CACHE_TTL_SECONDS
    except ValueError:
        (logger or logging.getLogger(__name__)).warning(
            "Ignoring invalid ICON_CACHE_TTL=%s", ttl_raw
        )
        ttl = DEFAULT_CACHE_TTL_SECONDS
    return IconService(
        IconSetManager(store),
        CollectionCache(ttl),
        default_namespace=os.environ.get("ICON_DEFAULT_NAMESPACE")
        or DEFAULT_NAMESPACE,
    )
