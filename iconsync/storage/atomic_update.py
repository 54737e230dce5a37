"""
IconSync Repository
Introductory remarks: This module is part of the IconSync codebase.

Atomic update groups for multi-step icon mutations.

Implements a 3-stage API:
  (1) Begin: open an empty group for one lock key
  (2) Append: add snapshot/write steps, optionally with undo callbacks
  (3) Execute: run the steps under the key's lock, undoing on error

Locks are per key (``icon:<ns>:<name>``, ``metadata:<ns>``), so writers of
different icons never wait on each other. Keys must not be re-entered from
inside a running group of the same key.

Waiting is bounded: a lock still held by another thread or process when the
deadline passes raises :class:`LockTimeoutError` instead of blocking.
"""

from __future__ import annotations

import contextlib
import fcntl
import hashlib
import logging
import os
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Generic, Iterator, Optional, TypeVar

_T = TypeVar("_T")

_LOGGER = logging.getLogger(__name__)


def _lock_dir() -> Path:
    return Path(os.environ.get("ICONSYNC_LOCK_DIR", "/tmp/iconsync-locks"))


class AtomicUpdateError(RuntimeError):
    """Raised when an atomic update group fails to execute."""


class LockTimeoutError(AtomicUpdateError):
    """Raised when a group cannot take its key lock before the deadline."""


def find_exception_in_chain(
    exc: BaseException,
    types: tuple[type[BaseException], ...],
) -> BaseException | None:
    """Return the first exception in ``exc``'s cause chain matching ``types``."""

    current: BaseException | None = exc
    seen: set[int] = set()
    while current is not None and id(current) not in seen:
        if isinstance(current, types):
            return current
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return None


def _lock_path(key: str) -> Path:
    digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:32]
    return _lock_dir() / f"{digest}.lock"


_POLL_INTERVAL_SECONDS = 0.01


def _remaining(deadline: float) -> float:
    return max(0.0, deadline - time.monotonic())


@contextlib.contextmanager
def _exclusive_file_lock(path: Path, deadline: float) -> Iterator[None]:
    """Hold an advisory ``flock`` on ``path``, polling until ``deadline``."""

    path.parent.mkdir(parents=True, exist_ok=True)
    handle = path.open("a+", encoding="utf-8")
    try:
        while True:
            try:
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    raise LockTimeoutError(
                        f"Timed out waiting for file lock {path.name}"
                    ) from None
                time.sleep(min(_POLL_INTERVAL_SECONDS, _remaining(deadline)))
        try:
            yield
        finally:
            with contextlib.suppress(OSError):
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
    finally:
        handle.close()


@dataclass
class _Slot:
    lock: threading.RLock
    users: int = 0


class _LockRegistry:
    """Per-key re-entrant locks, dropped again once no thread holds or waits."""

    def __init__(self) -> None:
        self._gate = threading.Lock()
        self._slots: dict[str, _Slot] = {}

    def __len__(self) -> int:
        with self._gate:
            return len(self._slots)

    @contextlib.contextmanager
    def acquire(self, key: str, deadline: float) -> Iterator[None]:
        with self._gate:
            slot = self._slots.get(key)
            if slot is None:
                slot = _Slot(lock=threading.RLock())
                self._slots[key] = slot
            slot.users += 1
        try:
            if not slot.lock.acquire(timeout=_remaining(deadline)):
                raise LockTimeoutError(f"Timed out waiting for lock {key}")
            try:
                yield
            finally:
                slot.lock.release()
        finally:
            with self._gate:
                slot.users -= 1
                if slot.users == 0:
                    self._slots.pop(key, None)


_LOCKS = _LockRegistry()


@dataclass(frozen=True)
class _Step(Generic[_T]):
    name: str
    do: Callable[[Dict[str, Any]], _T]
    undo: Optional[Callable[[Dict[str, Any]], None]] = None


class AtomicUpdateGroup:
    """Group multiple operations and execute them with best-effort atomicity."""

    def __init__(self, key: str) -> None:
        self._key = key
        self._steps: list[_Step[Any]] = []
        self.context: Dict[str, Any] = {}
        self._executed = False

    @property
    def key(self) -> str:
        return self._key

    @classmethod
    def begin(cls, key: str) -> "AtomicUpdateGroup":
        """Stage 1: initiate an empty transaction group."""
        return cls(key)

    def add_step(
        self,
        name: str,
        do: Callable[[Dict[str, Any]], Any],
        *,
        undo: Optional[Callable[[Dict[str, Any]], None]] = None,
    ) -> None:
        """Stage 2: append an operation to this group."""
        if self._executed:
            raise RuntimeError("Cannot append steps after execute()")
        self._steps.append(_Step(name=name, do=do, undo=undo))

    def execute(self, *, lock_timeout_seconds: float = 30.0) -> Dict[str, Any]:
        """Stage 3: execute all appended operations under an exclusive lock."""
        if self._executed:
            return self.context
        self._executed = True

        deadline = time.monotonic() + max(0.0, lock_timeout_seconds)
        with _LOCKS.acquire(self._key, deadline):
            with _exclusive_file_lock(_lock_path(self._key), deadline):
                return self._execute_steps()

    def _execute_steps(self) -> Dict[str, Any]:
        completed: list[_Step[Any]] = []
        try:
            for step in self._steps:
                step.do(self.context)
                completed.append(step)
        except Exception as exc:  # noqa: BLE001
            for step in reversed(completed):
                if step.undo is None:
                    continue
                try:
                    step.undo(self.context)
                except Exception as undo_exc:  # noqa: BLE001
                    _LOGGER.error(
                        "Undo failed key=%s step=%s: %s",
                        self._key,
                        step.name,
                        undo_exc,
                    )
            raise AtomicUpdateError(
                f"Atomic update group failed for {self._key}: {exc}"
            ) from exc
        return self.context
