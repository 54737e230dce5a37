"""
IconSync Repository
Introductory remarks: This module is part of the IconSync codebase.

Shared fixtures: isolated environment, a controllable clock and a manager
over the in-memory store.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from iconsync.manager import IconSetManager
from iconsync.storage import InMemoryIconStore
from iconsync.utils import env


class FakeClock:
    """Wall clock in seconds that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture(autouse=True)
def _isolated_runtime_env(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path_factory: pytest.TempPathFactory,
) -> None:
    """Keep tests away from real credentials, locks and log files."""

    monkeypatch.setattr(env, "_ENV_LOADED", True)
    for key in (
        "FIGMA_API_TOKEN",
        "FIGMA_FILE_ID",
        "ICON_CONFLICT_STRATEGY",
        "ICON_STORAGE_BACKEND",
        "ICON_STORAGE_BUCKET",
        "ICON_STORAGE_PREFIX",
        "ICON_CACHE_TTL",
        "ICONSYNC_ENV",
        "ICONSYNC_DEV",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("LOG_LEVEL", "0")
    monkeypatch.setenv(
        "ICONSYNC_LOCK_DIR", str(tmp_path_factory.mktemp("locks"))
    )
    monkeypatch.setenv(
        "ICON_STORAGE_PATH", str(Path(tmp_path_factory.mktemp("icons")))
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store() -> InMemoryIconStore:
    return InMemoryIconStore()


@pytest.fixture()
def manager(store: InMemoryIconStore, clock: FakeClock) -> IconSetManager:
    return IconSetManager(store, clock=clock)
