# gs_platform/handler.py
# GearSync - Optimizer request handling
# Copyright (c) 2025-2026 GearSync
from __future__ import annotations

import json
from typing import Any, Optional

from _logging import log

from .documents import is_u32, reject_json_constant
from .errors import DecodeError, ReconcileError
from .reconciler import Reconciler, UpdateReport
from .state import MappingStore, OptimizerEntry, ResultCache

HTTP_OK = 200
HTTP_BAD_REQUEST = 400


def decode_optimizer_body(raw: bytes | str) -> list[OptimizerEntry]:
    """Decode ``[{"label": [1, 2]}, ...]``. Duplicate labels are rejected."""
    try:
        data: Any = json.loads(raw, parse_constant=reject_json_constant)
    except (ValueError, RecursionError) as e:
        # deep nesting raises RecursionError
        raise DecodeError(f"body is not valid JSON: {e}") from e
    if not isinstance(data, list):
        raise DecodeError("body must be a JSON array")

    out: list[OptimizerEntry] = []
    seen: set[str] = set()
    for i, item in enumerate(data):
        if not isinstance(item, dict) or len(item) != 1:
            raise DecodeError(f"[{i}]: expected an object with exactly one key")
        (label, ids), = item.items()
        if not isinstance(ids, list) or not all(is_u32(x) for x in ids):
            raise DecodeError(f"[{i}].{label}: expected an array of u32")
        if label in seen:
            raise DecodeError(f"[{i}]: duplicate label '{label}'")
        seen.add(label)
        out.append(OptimizerEntry(label=label, ids=tuple(ids)))
    return out


class OptimizerHandler:
    def __init__(self, mappings: MappingStore, cache: ResultCache, reconciler: Reconciler) -> None:
        self.mappings = mappings
        self.cache = cache
        self.reconciler = reconciler
        self.last_report: Optional[UpdateReport] = None

    def handle(self, raw_body: bytes | str) -> int:
        log("Optimizer request received", module="HTTP")
        try:
            entries = decode_optimizer_body(raw_body)
        except DecodeError as e:
            log(f"rejected request: {e}", level="WARN", module="HTTP")
            return HTTP_BAD_REQUEST

        with self.cache.transaction() as tx:
            if not tx.should_apply(entries):
                log("No change since last update", module="HTTP")
                return HTTP_OK
            mapping = self.mappings.current()
            try:
                report = self.reconciler.apply(entries, mapping)
            except ReconcileError as e:
                # not committed: the next identical request retries
                self.last_report = e.report
                log(f"update failed: {e}", level="ERROR", module="HTTP")
                return HTTP_OK
            tx.commit(entries)
            self.last_report = report

        log(
            "Files updated",
            level="SUCCESS",
            module="HTTP",
            extra=report.as_dict(),
        )
        return HTTP_OK


__all__ = ["HTTP_OK", "HTTP_BAD_REQUEST", "decode_optimizer_body", "OptimizerHandler"]
