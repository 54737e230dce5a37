"""
IconSync Repository
Introductory remarks: This module is part of the IconSync codebase.

Unit tests for backend selection from the environment.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from iconsync.storage import (InMemoryIconStore, LocalIconStore, S3IconStore,
                              build_icon_store_from_env)


class _FakeClientError(Exception):
    def __init__(self, code: str) -> None:
        super().__init__(code)
        self.response = {"Error": {"Code": code}}


class _FakeS3Client:
    """Only the bucket probe is exercised here."""

    def __init__(self) -> None:
        self.raise_on_head: Exception | None = None

    def head_bucket(self, *, Bucket: str) -> None:
        if self.raise_on_head:
            raise self.raise_on_head


def test_defaults_to_local_store(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("ICON_STORAGE_PATH", str(tmp_path / "icons"))

    store = build_icon_store_from_env()

    assert isinstance(store, LocalIconStore)
    assert store.base_dir == tmp_path / "icons"


def test_memory_backend(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ICON_STORAGE_BACKEND", "Memory")

    assert isinstance(build_icon_store_from_env(), InMemoryIconStore)


def test_s3_backend_with_reachable_bucket(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("ICON_STORAGE_BACKEND", "s3")
    monkeypatch.setenv("ICON_STORAGE_BUCKET", "icons-bucket")

    store = build_icon_store_from_env(client=_FakeS3Client())

    assert isinstance(store, S3IconStore)


def test_s3_backend_falls_back_when_unreachable(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    """
    test_s3_backend_falls_back_when_unreachable: Function description.
    :param monkeypatch:
    :param tmp_path:
    :returns:
    """

    monkeypatch.setenv("ICON_STORAGE_BACKEND", "s3")
    monkeypatch.setenv("ICON_STORAGE_BUCKET", "icons-bucket")
    monkeypatch.setenv("ICON_STORAGE_PATH", str(tmp_path))
    client = _FakeS3Client()
    client.raise_on_head = _FakeClientError("ServiceUnavailable")

    store = build_icon_store_from_env(client=client)

    assert isinstance(store, LocalIconStore)


def test_s3_backend_without_bucket_falls_back(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("ICON_STORAGE_BACKEND", "s3")

    assert isinstance(
        build_icon_store_from_env(client=_FakeS3Client()), LocalIconStore
    )


def test_unknown_backend_uses_local(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ICON_STORAGE_BACKEND", "redis")

    assert isinstance(build_icon_store_from_env(), LocalIconStore)
