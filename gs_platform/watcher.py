# gs_platform/watcher.py
# GearSync - Config file watcher and reload controller
# Copyright (c) 2025-2026 GearSync
from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from _logging import log

from .errors import GearSyncError, ReconcileError
from .reconciler import Reconciler
from .state import MappingStore, ResultCache

IDLE = "idle"
RELOADING = "reloading"


class ReloadController:
    """
    Reacts to a debounced config change: refresh the mapping, then replay the
    last applied optimizer result against it. Always ends back in IDLE; on
    failure the previous mapping stays in effect.
    """

    def __init__(self, mappings: MappingStore, cache: ResultCache, reconciler: Reconciler) -> None:
        self.mappings = mappings
        self.cache = cache
        self.reconciler = reconciler
        self._lock = threading.Lock()
        self._status: Dict[str, Any] = {
            "state": IDLE,
            "reloads": 0,
            "last_reload_at": 0,
            "last_reload_ok": None,
            "last_error": "",
            "last_report": None,
        }

    @property
    def state(self) -> str:
        with self._lock:
            return self._status["state"]

    def status(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._status)

    def _set(self, **kv: Any) -> None:
        with self._lock:
            self._status.update(kv)

    def on_change(self, path: str | Path) -> bool:
        self._set(state=RELOADING)
        ok, err, report = False, "", None
        try:
            with self.cache.transaction() as tx:
                mapping = self.mappings.refresh(path)
                log(f"mapping reloaded from {path}", module="WATCH")
                cached = tx.value
                if cached is not None:
                    report = self.reconciler.apply(cached, mapping)
                    log("last optimizer result replayed", level="SUCCESS", module="WATCH", extra=report.as_dict())
            ok = True
        except ReconcileError as e:
            # mapping is already installed; only the replay failed
            err, report = str(e), e.report
            log(f"replay failed: {e}", level="ERROR", module="WATCH")
        except GearSyncError as e:
            err = str(e)
            log(f"reload failed, keeping previous mapping: {e}", level="ERROR", module="WATCH")
        finally:
            with self._lock:
                self._status["state"] = IDLE
                self._status["reloads"] += 1
                self._status["last_reload_at"] = int(time.time())
                self._status["last_reload_ok"] = ok
                self._status["last_error"] = err
                self._status["last_report"] = report.as_dict() if report is not None else None
        return ok


def _signature(p: Path) -> Optional[tuple[int, int]]:
    try:
        st = p.stat()
    except OSError:
        return None
    return (st.st_mtime_ns, st.st_size)


class ConfigWatcher:
    """
    Polls one file and calls ``on_change(path)`` once its content signature
    has been stable for ``debounce_seconds`` after a change. A missing file
    is not an event; the file showing up again is.
    """

    def __init__(
        self,
        path: str | Path,
        on_change: Callable[[Path], Any],
        *,
        debounce_seconds: float = 1.0,
        poll_seconds: float = 0.25,
    ) -> None:
        self.path = Path(path)
        self.on_change = on_change
        self.debounce_seconds = max(0.0, float(debounce_seconds))
        self.poll_seconds = max(0.01, float(poll_seconds))
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()
        # baseline taken at construction: edits made before start() still count
        self._seen: Optional[tuple[int, int]] = _signature(self.path)

    def is_alive(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def start(self) -> None:
        if self.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="ConfigWatcher", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        t = self._thread
        if t and t.is_alive():
            t.join(timeout=3.0)

    def _loop(self) -> None:
        pending: Optional[tuple[int, int]] = None
        changed_at = 0.0
        while not self._stop.wait(self.poll_seconds):
            sig = _signature(self.path)
            if sig is None:
                continue
            if sig != self._seen:
                self._seen = sig
                pending = sig
                changed_at = time.monotonic()
                continue
            if pending is not None and time.monotonic() - changed_at >= self.debounce_seconds:
                pending = None
                try:
                    self.on_change(self.path)
                except Exception as e:
                    log(f"change handler raised: {e}", level="ERROR", module="WATCH")


__all__ = ["IDLE", "RELOADING", "ReloadController", "ConfigWatcher"]
