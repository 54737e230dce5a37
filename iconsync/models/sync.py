"""Data shapes used while reconciling against the Figma API."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ComponentType(str, Enum):
    """Figma node kinds that can become icons."""

    COMPONENT = "COMPONENT"
    INSTANCE = "INSTANCE"


class SyncMode(str, Enum):
    """Reconciliation semantics."""

    FULL = "full"
    INCREMENTAL = "incremental"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "SyncMode":
        if raw is None or not str(raw).strip():
            return cls.FULL
        try:
            return cls(str(raw).strip().lower())
        except ValueError as exc:
            raise ValueError(
                'Invalid sync mode. Must be "full" or "incremental"'
            ) from exc


@dataclass(frozen=True)
class ExternalComponent:
    """Candidate icon discovered in a Figma file."""

    id: str
    name: str
    type: ComponentType
    description: str = ""
    component_id: Optional[str] = None


@dataclass(frozen=True)
class SyncError:
    """One failed component within a sync run."""

    source_id: str
    error: str
    step: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"componentId": self.source_id, "error": self.error}
        if self.step is not None:
            payload["step"] = self.step
        return payload


@dataclass
class SyncResult:
    """Outcome of one reconciliation run; never persisted."""

    success_count: int = 0
    failed_count: int = 0
    errors: List[SyncError] = field(default_factory=list)

    def record_success(self) -> None:
        self.success_count += 1

    def record_failure(
        self, source_id: str, error: str, step: Optional[str] = None
    ) -> None:
        self.failed_count += 1
        self.errors.append(SyncError(source_id=source_id, error=error, step=step))

    def record_aborted(self, error: str) -> None:
        # Run-level failures are reported without counting a component.
        self.errors.append(SyncError(source_id="N/A", error=error))

    @property
    def total_processed(self) -> int:
        return self.success_count + self.failed_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "successCount": self.success_count,
            "failedCount": self.failed_count,
            "totalProcessed": self.total_processed,
            "errors": [error.to_dict() for error in self.errors],
        }
