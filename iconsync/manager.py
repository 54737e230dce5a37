"""
IconSync Repository
Introductory remarks: This module is part of the IconSync codebase.

Icon set manager: the single writer over an :class:`IconStore`.

Every mutation of one icon runs inside an atomic update group keyed on
``icon:<namespace>:<name>``. The group checks the conflict policy, snapshots
the prior state into version history, writes the new icon and finally
refreshes the namespace metadata under its own ``metadata:<namespace>`` key.
A failure after the write restores the previous icon; snapshots are kept.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any, Callable, Dict, List, Optional

from iconsync.config import DEFAULT_LOCK_TIMEOUT_SECONDS
from iconsync.errors import (ConflictError, IconSyncError, NotFoundError,
                             StorageError, StorageUnavailableError,
                             ValidationError, VersionNotFoundError)
from iconsync.models import (ConflictStrategy, IconData, IconSet,
                             IconSetMetadata, IconVersion, version_id_for,
                             version_timestamp)
from iconsync.parsers import SVGParser
from iconsync.storage import (AtomicUpdateError, AtomicUpdateGroup, IconStore,
                              LockTimeoutError, find_exception_in_chain)

INITIAL_COLLECTION_VERSION = "1.0.0"


class IconSetManager:
    """Apply conflict policy, versioning and metadata upkeep to a store."""

    def __init__(
        self,
        store: IconStore,
        *,
        parser: Optional[SVGParser] = None,
        clock: Optional[Callable[[], float]] = None,
        logger: Optional[logging.Logger] = None,
        lock_timeout_seconds: float = DEFAULT_LOCK_TIMEOUT_SECONDS,
    ) -> None:
        self._store = store
        self._parser = parser or SVGParser()
        self._clock = clock or time.time
        self._lock_timeout = lock_timeout_seconds
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    @property
    def store(self) -> IconStore:
        return self._store

    # Reads ------------------------------------------------------------------

    def load_icon_set(self, namespace: str) -> IconSet:
        """Assemble the current collection from per-icon records."""
        icons: Dict[str, IconData] = {}
        for name in self._store.list(namespace):
            icon = self._store.get(namespace, name)
            # Deleted between list and get.
            if icon is not None:
                icons[name] = icon
        metadata = self._store.get_metadata(namespace)
        self._logger.debug(
            "Icon set loaded namespace=%s icons=%d", namespace, len(icons)
        )
        return IconSet(
            prefix=namespace,
            icons=icons,
            last_modified=metadata.last_modified if metadata else None,
        )

    def get_icon(self, namespace: str, name: str) -> Optional[IconData]:
        return self._store.get(namespace, name)

    def get_metadata(self, namespace: str) -> Optional[IconSetMetadata]:
        return self._store.get_metadata(namespace)

    def list_namespaces(self) -> List[str]:
        return self._store.list_namespaces()

    # Mutations --------------------------------------------------------------

    def add_icon(
        self,
        namespace: str,
        name: str,
        svg: str,
        conflict_strategy: ConflictStrategy | str | None = None,
    ) -> IconData:
        """Canonicalize ``svg`` and store it under ``name``.

        With ``reject`` an existing icon raises :class:`ConflictError` and
        nothing changes. With ``overwrite`` the existing icon is snapshotted
        before being replaced.
        """
        icon = self._parser.parse_svg(svg)
        strategy = self._resolve_strategy(conflict_strategy)
        self._logger.info(
            "Adding icon namespace=%s name=%s strategy=%s",
            namespace,
            name,
            strategy.value,
        )

        def _check_conflict(ctx: Dict[str, Any]) -> None:
            existing = ctx["previous"]
            if existing is not None and strategy is ConflictStrategy.REJECT:
                raise ConflictError(
                    f'Icon "{name}" already exists in namespace '
                    f'"{namespace}". Use overwrite strategy to replace it.',
                    details={
                        "namespace": namespace,
                        "name": name,
                        "conflictStrategy": strategy.value,
                    },
                )

        self._run_write(
            namespace, name, icon, pre_steps=[("check_conflict", _check_conflict)]
        )
        self._logger.info("Icon added namespace=%s name=%s", namespace, name)
        return icon

    def update_icon(self, namespace: str, name: str, svg: str) -> IconData:
        """Replace ``name`` unconditionally, snapshotting any prior icon."""
        icon = self._parser.parse_svg(svg)
        self._logger.info("Updating icon namespace=%s name=%s", namespace, name)
        self._run_write(namespace, name, icon)
        return icon

    def remove_icon(self, namespace: str, name: str) -> bool:
        """Delete the current icon; version history is kept.

        Returns True when an icon was removed. Removing a missing icon is a
        no-op.
        """
        group = AtomicUpdateGroup.begin(_icon_lock_key(namespace, name))

        def _delete(ctx: Dict[str, Any]) -> None:
            ctx["previous"] = self._store.get(namespace, name)
            if ctx["previous"] is not None:
                self._store.delete(namespace, name)

        def _restore(ctx: Dict[str, Any]) -> None:
            if ctx.get("previous") is not None:
                self._store.put(namespace, name, ctx["previous"])

        def _refresh(ctx: Dict[str, Any]) -> None:
            if ctx["previous"] is not None:
                self._refresh_metadata(namespace)

        group.add_step("delete", _delete, undo=_restore)
        group.add_step("refresh_metadata", _refresh)
        ctx = self._execute(group)
        removed = ctx["previous"] is not None
        self._logger.info(
            "Icon removed namespace=%s name=%s existed=%s",
            namespace,
            name,
            removed,
        )
        return removed

    def rollback_to_version(
        self, namespace: str, name: str, version_id: str
    ) -> IconData:
        """Make a stored snapshot current again.

        The icon that was current before the rollback is itself snapshotted,
        so a rollback can always be undone by another rollback.
        """
        self._logger.info(
            "Rolling back icon namespace=%s name=%s version=%s",
            namespace,
            name,
            version_id,
        )
        target = self._store.get_version(namespace, name, version_id)
        if target is None:
            raise VersionNotFoundError(
                f"Version not found: {version_id}",
                details={
                    "namespace": namespace,
                    "name": name,
                    "versionId": version_id,
                },
            )
        self._run_write(namespace, name, target)
        return target

    # Versions ---------------------------------------------------------------

    def save_version(
        self,
        namespace: str,
        name: str,
        icon: Optional[IconData] = None,
    ) -> str:
        """Snapshot ``icon`` (default: the current icon) and return its id."""
        group = AtomicUpdateGroup.begin(_icon_lock_key(namespace, name))

        def _snapshot(ctx: Dict[str, Any]) -> None:
            data = icon if icon is not None else self._store.get(namespace, name)
            if data is None:
                raise NotFoundError(
                    f"Icon '{namespace}:{name}' does not exist",
                    details={"namespace": namespace, "name": name},
                )
            ctx["version_id"] = self._snapshot(namespace, name, data)

        group.add_step("snapshot", _snapshot)
        return self._execute(group)["version_id"]

    def list_versions(self, namespace: str, name: str) -> List[str]:
        """Return version ids, oldest first."""
        return self._store.list_versions(namespace, name)

    def get_version_history(self, namespace: str, name: str) -> List[IconVersion]:
        """Return all snapshots of ``name``, newest first."""
        versions: List[IconVersion] = []
        for version_id in self._store.list_versions(namespace, name):
            data = self._store.get_version(namespace, name, version_id)
            if data is None:
                continue
            versions.append(
                IconVersion(
                    id=version_id,
                    timestamp=version_timestamp(version_id) or 0,
                    data=data,
                )
            )
        versions.sort(key=lambda version: (version.timestamp, version.id), reverse=True)
        self._logger.debug(
            "Version history namespace=%s name=%s versions=%d",
            namespace,
            name,
            len(versions),
        )
        return versions

    # Internals --------------------------------------------------------------

    def _resolve_strategy(
        self, requested: ConflictStrategy | str | None
    ) -> ConflictStrategy:
        if isinstance(requested, ConflictStrategy):
            return requested
        try:
            strategy = ConflictStrategy.parse(requested) or ConflictStrategy.parse(
                os.environ.get("ICON_CONFLICT_STRATEGY")
            )
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        return strategy or ConflictStrategy.REJECT

    def _run_write(
        self,
        namespace: str,
        name: str,
        icon: IconData,
        *,
        pre_steps: Optional[List[tuple[str, Callable[[Dict[str, Any]], None]]]] = None,
    ) -> Dict[str, Any]:
        group = AtomicUpdateGroup.begin(_icon_lock_key(namespace, name))

        def _load_previous(ctx: Dict[str, Any]) -> None:
            ctx["previous"] = self._store.get(namespace, name)

        def _snapshot_previous(ctx: Dict[str, Any]) -> None:
            if ctx["previous"] is not None:
                ctx["version_id"] = self._snapshot(
                    namespace, name, ctx["previous"]
                )

        def _write(ctx: Dict[str, Any]) -> None:
            self._store.put(namespace, name, icon)

        def _restore(ctx: Dict[str, Any]) -> None:
            previous = ctx.get("previous")
            if previous is None:
                self._store.delete(namespace, name)
            else:
                self._store.put(namespace, name, previous)

        group.add_step("load_previous", _load_previous)
        for step_name, step in pre_steps or []:
            group.add_step(step_name, step)
        group.add_step("snapshot_previous", _snapshot_previous)
        group.add_step("write", _write, undo=_restore)
        group.add_step(
            "refresh_metadata", lambda ctx: self._refresh_metadata(namespace)
        )
        return self._execute(group)

    def _snapshot(self, namespace: str, name: str, icon: IconData) -> str:
        # Caller holds the icon lock.
        now = self._now_ms()
        existing = self._store.list_versions(namespace, name)
        if existing:
            latest = version_timestamp(existing[-1])
            if latest is not None:
                now = max(now, latest + 1)
        version_id = version_id_for(now)
        self._store.put_version(namespace, name, version_id, icon)
        self._logger.info(
            "Version saved namespace=%s name=%s version=%s",
            namespace,
            name,
            version_id,
        )
        return version_id

    def _refresh_metadata(self, namespace: str) -> IconSetMetadata:
        group = AtomicUpdateGroup.begin(f"metadata:{namespace}")

        def _recompute(ctx: Dict[str, Any]) -> None:
            previous = self._store.get_metadata(namespace)
            now = self._now_ms()
            if previous is not None:
                now = max(now, previous.last_modified + 1)
            metadata = IconSetMetadata(
                prefix=namespace,
                name=previous.name if previous else namespace,
                total=len(self._store.list(namespace)),
                version=(
                    self._increment_version(previous.version)
                    if previous
                    else INITIAL_COLLECTION_VERSION
                ),
                last_modified=now,
                author=previous.author if previous else None,
                license=previous.license if previous else None,
            )
            self._store.put_metadata(namespace, metadata)
            ctx["metadata"] = metadata

        group.add_step("recompute", _recompute)
        return self._execute(group)["metadata"]

    def _increment_version(self, current: str) -> str:
        parts = current.split(".")
        if len(parts) == 3:
            try:
                parts[2] = str(int(parts[2]) + 1)
            except ValueError:
                pass
            else:
                return ".".join(parts)
        return f"1.0.{self._now_ms()}"

    def _execute(self, group: AtomicUpdateGroup) -> Dict[str, Any]:
        try:
            return group.execute(lock_timeout_seconds=self._lock_timeout)
        except AtomicUpdateError as exc:
            domain_error = find_exception_in_chain(exc, (IconSyncError,))
            if domain_error is not None:
                raise domain_error from None
            if isinstance(exc, LockTimeoutError):
                self._logger.warning("Lock busy key=%s: %s", group.key, exc)
                raise StorageUnavailableError(str(exc)) from exc
            self._logger.error("Update failed key=%s: %s", group.key, exc)
            raise StorageError(str(exc)) from exc

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)


def _icon_lock_key(namespace: str, name: str) -> str:
    return f"icon:{namespace}:{name}"
