# gs_platform/errors.py
# GearSync - Error taxonomy
# Copyright (c) 2025-2026 GearSync
from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence


class GearSyncError(Exception):
    """Base class for every error raised by the sync core."""


class DocumentIOError(GearSyncError):
    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}")


class DocumentParseError(GearSyncError):
    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}")


class ConfigError(DocumentParseError):
    """Config file parsed as JSON but does not describe a valid mapping."""


class DecodeError(GearSyncError):
    """Request body is not a list of single-key {label: [u32, ...]} objects."""


class ReconcileError(GearSyncError):
    """One or both documents could not be updated.

    ``report`` holds whatever was applied before the failure, ``errors`` the
    underlying document errors in the order they happened.
    """

    def __init__(self, report: Any, errors: Sequence[GearSyncError]) -> None:
        self.report = report
        self.errors = list(errors)
        super().__init__("; ".join(str(e) for e in self.errors) or "reconcile failed")


__all__ = [
    "GearSyncError",
    "DocumentIOError",
    "DocumentParseError",
    "ConfigError",
    "DecodeError",
    "ReconcileError",
]
