"""
IconSync Repository
Introductory remarks: This module is part of the IconSync codebase.

Domain models for icons, icon sets and their version history.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional

VERSION_ID_PREFIX = "v"


class ConflictStrategy(str, Enum):
    """Rule applied when a write targets an existing icon name."""

    REJECT = "reject"
    OVERWRITE = "overwrite"

    @classmethod
    def parse(cls, raw: Optional[str]) -> Optional["ConflictStrategy"]:
        """Return the strategy named by ``raw``; ``None`` when blank."""
        if raw is None or not str(raw).strip():
            return None
        try:
            return cls(str(raw).strip().lower())
        except ValueError as exc:
            raise ValueError(
                f"Conflict strategy '{raw}' is invalid. "
                f"Expected one of {[s.value for s in cls]}"
            ) from exc


@dataclass(frozen=True)
class IconData:
    """Renderable geometry and default metadata of one icon (Iconify shape)."""

    body: str
    width: Optional[float] = None
    height: Optional[float] = None
    left: Optional[float] = None
    top: Optional[float] = None
    rotate: Optional[int] = None
    h_flip: Optional[bool] = None
    v_flip: Optional[bool] = None

    def __post_init__(self) -> None:
        if not isinstance(self.body, str):
            raise ValueError("Icon body must be a string")
        if self.rotate is not None and self.rotate not in (0, 1, 2, 3):
            raise ValueError(
                f"Icon rotate '{self.rotate}' is invalid. Expected 0-3"
            )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"body": self.body}
        for attr, key in _OPTIONAL_FIELDS:
            value = getattr(self, attr)
            if value is not None:
                payload[key] = _compact_number(value)
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "IconData":
        if "body" not in payload:
            raise ValueError("Icon payload is missing 'body'")
        kwargs: Dict[str, Any] = {}
        for attr, key in _OPTIONAL_FIELDS:
            if payload.get(key) is not None:
                kwargs[attr] = payload[key]
        return cls(body=payload["body"], **kwargs)


_OPTIONAL_FIELDS = (
    ("width", "width"),
    ("height", "height"),
    ("left", "left"),
    ("top", "top"),
    ("rotate", "rotate"),
    ("h_flip", "hFlip"),
    ("v_flip", "vFlip"),
)


def _compact_number(value: Any) -> Any:
    # 24.0 -> 24 so payloads match what clients uploaded
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


@dataclass(frozen=True)
class IconSet:
    """All current icons of one namespace, assembled on demand."""

    prefix: str
    icons: Dict[str, IconData] = field(default_factory=dict)
    last_modified: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "prefix": self.prefix,
            "icons": {
                name: icon.to_dict() for name, icon in sorted(self.icons.items())
            },
        }
        if self.last_modified is not None:
            payload["lastModified"] = self.last_modified
        return payload

    def subset(self, names: list[str]) -> "IconSet":
        """Return a set restricted to ``names`` that exist."""
        selected = {name: self.icons[name] for name in names if name in self.icons}
        return IconSet(
            prefix=self.prefix,
            icons=selected,
            last_modified=self.last_modified,
        )


@dataclass(frozen=True)
class IconSetMetadata:
    """Persisted summary of a namespace, cheap to read."""

    prefix: str
    name: str
    total: int
    version: str
    last_modified: int
    author: Optional[str] = None
    license: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "prefix": self.prefix,
            "name": self.name,
            "total": self.total,
            "version": self.version,
            "lastModified": self.last_modified,
        }
        if self.author is not None:
            payload["author"] = self.author
        if self.license is not None:
            payload["license"] = self.license
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "IconSetMetadata":
        return cls(
            prefix=payload["prefix"],
            name=payload.get("name") or payload["prefix"],
            total=int(payload.get("total", 0)),
            version=str(payload.get("version", "1.0.0")),
            last_modified=int(payload.get("lastModified", 0)),
            author=payload.get("author"),
            license=payload.get("license"),
        )


@dataclass(frozen=True)
class IconVersion:
    """Immutable historical snapshot of one icon."""

    id: str
    timestamp: int
    data: IconData

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "data": self.data.to_dict(),
        }


def version_id_for(timestamp_ms: int) -> str:
    return f"{VERSION_ID_PREFIX}{timestamp_ms}"


def version_timestamp(version_id: str) -> Optional[int]:
    """Return the epoch-ms encoded in ``version_id`` or ``None``."""
    if not version_id.startswith(VERSION_ID_PREFIX):
        return None
    try:
        return int(version_id[len(VERSION_ID_PREFIX):])
    except ValueError:
        return None


def version_sort_key(version_id: str) -> tuple[int, str]:
    timestamp = version_timestamp(version_id)
    return (timestamp if timestamp is not None else -1, version_id)
