"""
IconSync Repository
Introductory remarks: This module is part of the IconSync codebase.

Unit tests for the filesystem icon store.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from iconsync.errors import ValidationError
from iconsync.models import IconData, IconSetMetadata
from iconsync.storage import LocalIconStore


def _icon(width: float = 24) -> IconData:
    return IconData(body='<path d="M0 0h24v24"/>', width=width, height=width)


def test_put_writes_json_under_namespace_layout(tmp_path: Path) -> None:
    """
    test_put_writes_json_under_namespace_layout: Function description.
    :param tmp_path:
    :returns:
    """

    store = LocalIconStore(tmp_path)
    store.put("gd", "home", _icon())

    record = tmp_path / "gd" / "icons" / "home.json"
    assert json.loads(record.read_text()) == {
        "body": '<path d="M0 0h24v24"/>',
        "width": 24,
        "height": 24,
    }
    assert store.get("gd", "home") == IconData(
        body='<path d="M0 0h24v24"/>', width=24, height=24
    )
    assert not list((tmp_path / "gd" / "icons").glob("*.tmp"))


def test_get_missing_icon_returns_none(tmp_path: Path) -> None:
    store = LocalIconStore(tmp_path)

    assert store.get("gd", "nope") is None
    assert store.get_metadata("gd") is None
    assert store.get_version("gd", "nope", "v1") is None
    assert store.list("gd") == []
    assert store.list_versions("gd", "nope") == []


def test_delete_is_idempotent(tmp_path: Path) -> None:
    store = LocalIconStore(tmp_path)
    store.put("gd", "home", _icon())

    store.delete("gd", "home")
    store.delete("gd", "home")

    assert store.get("gd", "home") is None
    assert store.list("gd") == []


def test_versions_are_listed_in_timestamp_order(tmp_path: Path) -> None:
    store = LocalIconStore(tmp_path)
    for version_id in ("v1000", "v999", "v10000"):
        store.put_version("gd", "home", version_id, _icon())

    assert store.list_versions("gd", "home") == ["v999", "v1000", "v10000"]
    assert store.get_version("gd", "home", "v999") == _icon()


def test_list_namespaces_only_reports_initialized_sets(tmp_path: Path) -> None:
    """
    test_list_namespaces_only_reports_initialized_sets: Function description.
    :param tmp_path:
    :returns:
    """

    store = LocalIconStore(tmp_path)
    store.put("draft", "home", _icon())
    store.put_metadata(
        "gd",
        IconSetMetadata(
            prefix="gd", name="gd", total=0, version="1.0.0", last_modified=1
        ),
    )
    (tmp_path / "stray.txt").write_text("x")

    assert store.list_namespaces() == ["gd"]
    assert store.get_metadata("gd").version == "1.0.0"


@pytest.mark.parametrize("name", ["..", "a/b", "a\\b", ""])
def test_rejects_path_escaping_names(tmp_path: Path, name: str) -> None:
    store = LocalIconStore(tmp_path)

    with pytest.raises(ValidationError):
        store.put("gd", name, _icon())
