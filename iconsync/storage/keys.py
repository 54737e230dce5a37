"""Key layout and payload helpers shared by the concrete stores."""

from __future__ import annotations

import json
from typing import Any, Dict

from iconsync.errors import ValidationError
from iconsync.models import IconData, IconSetMetadata

ICONS_DIR = "icons"
VERSIONS_DIR = "versions"
METADATA_FILE = "metadata.json"
RECORD_SUFFIX = ".json"


def safe_segment(value: str, *, field: str) -> str:
    """Reject values that could escape their namespace directory."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} must be a non-empty string")
    if value in {".", ".."} or "/" in value or "\\" in value:
        raise ValidationError(f"{field} '{value}' is not a valid key segment")
    return value


def icon_key(namespace: str, name: str) -> str:
    return (
        f"{safe_segment(namespace, field='namespace')}/{ICONS_DIR}/"
        f"{safe_segment(name, field='name')}{RECORD_SUFFIX}"
    )


def version_key(namespace: str, name: str, version_id: str) -> str:
    return (
        f"{version_dir_key(namespace, name)}/"
        f"{safe_segment(version_id, field='version_id')}{RECORD_SUFFIX}"
    )


def version_dir_key(namespace: str, name: str) -> str:
    return (
        f"{safe_segment(namespace, field='namespace')}/{VERSIONS_DIR}/"
        f"{safe_segment(name, field='name')}"
    )


def metadata_key(namespace: str) -> str:
    return f"{safe_segment(namespace, field='namespace')}/{METADATA_FILE}"


def strip_suffix(filename: str) -> str:
    if filename.endswith(RECORD_SUFFIX):
        return filename[: -len(RECORD_SUFFIX)]
    return filename


def encode_icon(icon: IconData) -> bytes:
    return json.dumps(icon.to_dict(), indent=2).encode("utf-8")


def decode_icon(raw: bytes | str) -> IconData:
    payload: Dict[str, Any] = json.loads(raw)
    return IconData.from_dict(payload)


def encode_metadata(metadata: IconSetMetadata) -> bytes:
    return json.dumps(metadata.to_dict(), indent=2).encode("utf-8")


def decode_metadata(raw: bytes | str) -> IconSetMetadata:
    return IconSetMetadata.from_dict(json.loads(raw))
