"""Figma reconciliation: retry, discovery and the sync state machine."""

from .components import (discover_components, filter_icon_components,
                         slugify_component_name)
from .reconciler import FigmaReconciler, SyncState
from .retry import RetryPolicy, calculate_delay, execute_with_retry

__all__ = [
    "FigmaReconciler",
    "RetryPolicy",
    "SyncState",
    "calculate_delay",
    "discover_components",
    "execute_with_retry",
    "filter_icon_components",
    "slugify_component_name",
]
