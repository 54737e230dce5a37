"""
IconSync Repository
Introductory remarks: This module is part of the IconSync codebase.

Reconcile a local namespace against a Figma file.

A run moves through ``DISCONNECTED -> CONNECTING -> CONNECTED ->
DISCOVERING -> EXPORTING -> APPLYING -> DONE``. Discovery failure aborts the
run before anything is written. After discovery every component is handled
on its own: a failed export or apply is recorded with the step it failed in
and the loop moves on, so one bad component never rolls back the others.
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set

from iconsync.clients.figma_client import FigmaClient
from iconsync.config import SYNC_COMPONENT_DELAY_SECONDS
from iconsync.errors import (AuthenticationFailedError, ErrorCategory,
                             ExternalSourceError, IconSyncError,
                             MissingCredentialsError, SourceNotFoundError)
from iconsync.manager import IconSetManager
from iconsync.models import (ConflictStrategy, ExternalComponent, SyncMode,
                             SyncResult)

from .components import (discover_components, filter_icon_components,
                         slugify_component_name)
from .retry import RetryPolicy, categorize, execute_with_retry


class SyncState(str, Enum):
    """Reconciler lifecycle."""

    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    DISCOVERING = "DISCOVERING"
    EXPORTING = "EXPORTING"
    APPLYING = "APPLYING"
    DONE = "DONE"
    FAILED_STEP = "FAILED_STEP"


ClientFactory = Callable[[str], Any]


class FigmaReconciler:
    """Pull icon components from Figma into an :class:`IconSetManager`."""

    def __init__(
        self,
        *,
        client_factory: Optional[ClientFactory] = None,
        retry_policy: Optional[RetryPolicy] = None,
        component_delay_seconds: float = SYNC_COMPONENT_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._client_factory = client_factory or (lambda token: FigmaClient(token))
        self._retry_policy = retry_policy or RetryPolicy()
        self._component_delay = component_delay_seconds
        self._sleep = sleep
        self._clock = clock
        self._logger = logger or logging.getLogger(self.__class__.__name__)
        self._client: Any = None
        self._file_id: Optional[str] = None
        self._state = SyncState.DISCONNECTED
        self._failed_steps: Dict[str, SyncState] = {}

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    @property
    def file_id(self) -> Optional[str]:
        return self._file_id

    @property
    def failed_steps(self) -> Dict[str, SyncState]:
        """Step each component of the last run failed in, by source id."""
        return dict(self._failed_steps)

    def connect(self, token: str, file_id: str) -> None:
        """Validate credentials with one ``GET /files/<id>`` round-trip."""
        if not token or not file_id:
            self._logger.error("Figma connection failed: missing credentials")
            raise MissingCredentialsError(
                "Figma API token and file ID are required",
                category=ErrorCategory.AUTHENTICATION,
            )

        self._state = SyncState.CONNECTING
        self._logger.info("Attempting to connect to Figma API file_id=%s", file_id)
        client = self._client_factory(token)
        try:
            self._retry(lambda: client.get_file(file_id), "Figma API connection")
        except ExternalSourceError as exc:
            self._state = SyncState.DISCONNECTED
            self._client = None
            if exc.category is ErrorCategory.AUTHENTICATION:
                raise AuthenticationFailedError(
                    "Invalid Figma API token",
                    category=exc.category,
                    status_code=exc.status_code,
                ) from exc
            if exc.category is ErrorCategory.NOT_FOUND:
                raise SourceNotFoundError(
                    "Figma file not found",
                    category=exc.category,
                    status_code=exc.status_code,
                    details={"fileId": file_id},
                ) from exc
            self._logger.error(
                "Failed to connect to Figma API after all retries: %s", exc
            )
            raise
        self._client = client
        self._file_id = file_id
        self._state = SyncState.CONNECTED
        self._logger.info("Successfully connected to Figma API file_id=%s", file_id)

    def discover(self, icons_only: bool = False) -> List[ExternalComponent]:
        """Fetch the file and list exportable components."""
        client = self._require_client()
        self._state = SyncState.DISCOVERING
        payload = self._retry(
            lambda: client.get_file(self._file_id), "Fetch Figma components"
        )
        try:
            components = discover_components(payload)
        except ValueError as exc:
            raise ExternalSourceError(
                str(exc), category=ErrorCategory.API
            ) from exc
        if icons_only:
            components = filter_icon_components(components)
        return components

    def export_one(self, component_id: str) -> str:
        """Render ``component_id`` as SVG text."""
        client = self._require_client()
        if not component_id:
            raise ExternalSourceError("Component ID is required")
        self._logger.info(
            "Exporting Figma component as SVG file_id=%s component_id=%s",
            self._file_id,
            component_id,
        )

        def _resolve_url() -> str:
            images = client.get_image_urls(self._file_id, [component_id], "svg")
            url = images.get(component_id)
            if not url:
                raise ExternalSourceError(
                    f"No SVG URL returned for component {component_id}",
                    category=ErrorCategory.UNKNOWN,
                )
            return url

        url = self._retry(
            _resolve_url, f"Export component {component_id} - get URL"
        )
        return self._retry(
            lambda: client.download_text(url),
            f"Export component {component_id} - download SVG",
        )

    def sync_icon(
        self,
        manager: IconSetManager,
        namespace: str,
        component: ExternalComponent,
    ) -> str:
        """Export one component and store it with ``overwrite``."""
        icon_name = slugify_component_name(component.name, component.id)
        self._state = SyncState.EXPORTING
        svg = self.export_one(component.id)
        self._state = SyncState.APPLYING
        manager.add_icon(namespace, icon_name, svg, ConflictStrategy.OVERWRITE)
        self._logger.info(
            "Synced icon namespace=%s name=%s component_id=%s",
            namespace,
            icon_name,
            component.id,
        )
        return icon_name

    def sync(
        self,
        manager: IconSetManager,
        namespace: str,
        mode: SyncMode = SyncMode.FULL,
        icons_only: bool = False,
    ) -> SyncResult:
        """Run one reconciliation pass and report per-component outcomes."""
        self._require_client()
        result = SyncResult()
        self._failed_steps = {}
        self._logger.info(
            "Starting Figma sync file_id=%s namespace=%s mode=%s",
            self._file_id,
            namespace,
            mode.value,
        )

        try:
            components = self.discover(icons_only=icons_only)
        except Exception as exc:  # noqa: BLE001
            self._logger.error(
                "Failed to fetch components from Figma, sync aborted "
                "category=%s error=%s",
                categorize(exc).value,
                exc,
            )
            result.record_aborted(f"Failed to fetch components: {exc}")
            self._state = SyncState.DONE
            return result

        if not components:
            self._logger.warning(
                "No components found in Figma file file_id=%s", self._file_id
            )
            self._state = SyncState.DONE
            return result

        existing = self._existing_names(manager, namespace, mode)

        for component in components:
            icon_name = slugify_component_name(component.name, component.id)
            if existing is not None and icon_name in existing:
                self._logger.debug(
                    "Skipping existing icon in incremental sync name=%s", icon_name
                )
                result.record_success()
                continue

            try:
                self.sync_icon(manager, namespace, component)
            except Exception as exc:  # noqa: BLE001
                failed_in = self._state
                self._failed_steps[component.id] = failed_in
                self._state = SyncState.FAILED_STEP
                result.record_failure(component.id, str(exc), step=failed_in.value)
                self._logger.warning(
                    "Failed to sync component, continuing component_id=%s "
                    "name=%s step=%s category=%s error=%s",
                    component.id,
                    component.name,
                    failed_in.value,
                    categorize(exc).value,
                    exc,
                )
            else:
                result.record_success()

            self._sleep(self._component_delay)

        self._state = SyncState.DONE
        self._logger.info(
            "Figma sync completed namespace=%s components=%d success=%d failed=%d",
            namespace,
            len(components),
            result.success_count,
            result.failed_count,
        )
        return result

    def _existing_names(
        self, manager: IconSetManager, namespace: str, mode: SyncMode
    ) -> Optional[Set[str]]:
        if mode is not SyncMode.INCREMENTAL:
            return None
        try:
            names = set(manager.load_icon_set(namespace).icons)
        except IconSyncError as exc:
            self._logger.warning(
                "Failed to load existing icons, performing full sync: %s", exc
            )
            return None
        self._logger.info(
            "Loaded existing icons for incremental sync count=%d", len(names)
        )
        return names

    def _require_client(self) -> Any:
        if self._client is None:
            raise ExternalSourceError(
                "Not connected to Figma API. Call connect() first."
            )
        return self._client

    def _retry(self, operation: Callable[[], Any], name: str) -> Any:
        return execute_with_retry(
            operation,
            name,
            self._retry_policy,
            sleep=self._sleep,
            clock=self._clock,
            log=self._logger,
        )
