# gs_platform/state.py
# GearSync - Shared in-process state (mapping + last applied optimizer result)
# Copyright (c) 2025-2026 GearSync
"""
Two cells are shared between the request workers and the config watcher:
the current ``SyncMapping`` and the last optimizer result that was applied.
Each sits behind its own readers-writer lock.

Lock order is always cache -> mapping. Request handling and reload replay
both run inside ``ResultCache.transaction()``, so their document writes never
interleave.
"""
from __future__ import annotations

import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from .config_base import SyncMapping, load_mapping


class RWLock:
    """Writer-preferring readers-writer lock. Not reentrant."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


# ------------------------------------------------------------
# Optimizer result
# ------------------------------------------------------------
@dataclass(frozen=True)
class OptimizerEntry:
    label: str
    ids: tuple[int, ...]

    @property
    def id_set(self) -> frozenset[int]:
        return frozenset(self.ids)


def entries_equal(a: Sequence[OptimizerEntry], b: Sequence[OptimizerEntry]) -> bool:
    # same length, and every entry of a has a same-label, same-id-set entry in b
    if len(a) != len(b):
        return False
    by_label: dict[str, list[frozenset[int]]] = {}
    for e in b:
        by_label.setdefault(e.label, []).append(e.id_set)
    for e in a:
        if e.id_set not in by_label.get(e.label, ()):
            return False
    return True


# ------------------------------------------------------------
# Mapping store
# ------------------------------------------------------------
class MappingStore:
    def __init__(
        self,
        initial: SyncMapping,
        loader: Callable[[str | Path], SyncMapping] = load_mapping,
    ) -> None:
        self._mapping = initial
        self._loader = loader
        self._lock = RWLock()

    def current(self) -> SyncMapping:
        with self._lock.read():
            return self._mapping

    def refresh(self, path: str | Path) -> SyncMapping:
        """Load ``path`` and install it. On failure the old mapping stays."""
        with self._lock.write():
            mapping = self._loader(path)
            self._mapping = mapping
            return mapping


# ------------------------------------------------------------
# Result cache
# ------------------------------------------------------------
class CacheTransaction:
    """Write-locked view of the cache handed out by ``ResultCache.transaction``."""

    def __init__(self, cache: "ResultCache") -> None:
        self._cache = cache

    @property
    def value(self) -> Optional[tuple[OptimizerEntry, ...]]:
        return self._cache._value

    def should_apply(self, incoming: Sequence[OptimizerEntry]) -> bool:
        cur = self._cache._value
        return cur is None or not entries_equal(incoming, cur)

    def commit(self, incoming: Sequence[OptimizerEntry]) -> None:
        self._cache._value = tuple(incoming)


class ResultCache:
    def __init__(self) -> None:
        self._value: Optional[tuple[OptimizerEntry, ...]] = None
        self._lock = RWLock()

    def snapshot(self) -> Optional[tuple[OptimizerEntry, ...]]:
        with self._lock.read():
            return self._value

    def is_empty(self) -> bool:
        return self.snapshot() is None

    @contextmanager
    def transaction(self) -> Iterator[CacheTransaction]:
        with self._lock.write():
            yield CacheTransaction(self)


__all__ = [
    "RWLock",
    "OptimizerEntry",
    "entries_equal",
    "MappingStore",
    "CacheTransaction",
    "ResultCache",
]
