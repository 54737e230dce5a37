"""
IconSync Repository
Introductory remarks: This module is part of the IconSync codebase.

Unit tests for the icon and sync domain models.
"""

from __future__ import annotations

import pytest

from iconsync.models import (ConflictStrategy, IconData, IconSet,
                             IconSetMetadata, SyncError, SyncMode, SyncResult,
                             version_id_for, version_sort_key,
                             version_timestamp)


def test_icon_data_serializes_iconify_shape() -> None:
    icon = IconData(body="<path/>", width=24.0, height=24.0, h_flip=True)

    assert icon.to_dict() == {
        "body": "<path/>",
        "width": 24,
        "height": 24,
        "hFlip": True,
    }


def test_icon_data_from_dict_requires_body() -> None:
    with pytest.raises(ValueError, match="missing 'body'"):
        IconData.from_dict({"width": 3})


def test_icon_data_rejects_invalid_rotation() -> None:
    with pytest.raises(ValueError, match="rotate"):
        IconData(body="<path/>", rotate=4)


def test_icon_set_subset_keeps_only_existing_names() -> None:
    icons = {
        "home": IconData(body="<path d='h'/>"),
        "user": IconData(body="<path d='u'/>"),
    }
    icon_set = IconSet(prefix="gd", icons=icons, last_modified=5)

    subset = icon_set.subset(["user", "missing"])

    assert list(subset.icons) == ["user"]
    assert subset.to_dict() == {
        "prefix": "gd",
        "icons": {"user": {"body": "<path d='u'/>"}},
        "lastModified": 5,
    }


def test_metadata_from_dict_defaults() -> None:
    metadata = IconSetMetadata.from_dict({"prefix": "gd"})

    assert metadata.name == "gd"
    assert metadata.total == 0
    assert metadata.version == "1.0.0"
    assert metadata.author is None


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, None),
        ("  ", None),
        ("reject", ConflictStrategy.REJECT),
        (" Overwrite ", ConflictStrategy.OVERWRITE),
    ],
)
def test_conflict_strategy_parse(raw, expected) -> None:
    assert ConflictStrategy.parse(raw) is expected


def test_conflict_strategy_parse_rejects_unknown() -> None:
    with pytest.raises(ValueError, match="invalid"):
        ConflictStrategy.parse("merge")


def test_sync_mode_parse() -> None:
    assert SyncMode.parse(None) is SyncMode.FULL
    assert SyncMode.parse("INCREMENTAL") is SyncMode.INCREMENTAL
    with pytest.raises(ValueError, match="full"):
        SyncMode.parse("partial")


def test_version_ids_sort_by_timestamp_not_text() -> None:
    ids = [version_id_for(1000), version_id_for(999), version_id_for(10000)]

    assert sorted(ids, key=version_sort_key) == ["v999", "v1000", "v10000"]
    assert version_timestamp("v1000") == 1000
    assert version_timestamp("snapshot") is None


def test_sync_result_counts_and_serializes() -> None:
    """
    test_sync_result_counts_and_serializes: Function description.
    :param:
    :returns:
    """

    result = SyncResult()
    result.record_success()
    result.record_failure("1:2", "export failed", step="EXPORTING")
    result.record_aborted("discovery failed")

    assert result.total_processed == 2
    assert result.to_dict() == {
        "successCount": 1,
        "failedCount": 1,
        "totalProcessed": 2,
        "errors": [
            {"componentId": "1:2", "error": "export failed", "step": "EXPORTING"},
            {"componentId": "N/A", "error": "discovery failed"},
        ],
    }
    assert SyncError("x", "y").to_dict() == {"componentId": "x", "error": "y"}
