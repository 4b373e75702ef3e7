# gs_platform/reconciler.py
# GearSync - Reconciliation engine
# Copyright (c) 2025-2026 GearSync
"""
Writes optimizer IDs into the profile and settings documents.

A gear entry joins to a label through its ``Comment``; a settings field joins
through ``settingsMapper``. IDs are compared as sets and only replaced when
they differ. A document is only rewritten when something in it changed.
A failure on one document does not stop the other one from being updated;
the errors are raised together once both have been attempted.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from _logging import log

from .config_base import SyncMapping
from .documents import JsonDocumentStore, Profile, as_u32_list
from .errors import GearSyncError, ReconcileError
from .state import OptimizerEntry


class DocumentStore(Protocol):
    def load_profile(self, path: str) -> Profile: ...
    def save_profile(self, path: str, profile: Profile) -> None: ...
    def load_settings(self, path: str) -> dict[str, Any]: ...
    def save_settings(self, path: str, settings: dict[str, Any]) -> None: ...


@dataclass
class UpdateReport:
    profile_changed: list[str] = field(default_factory=list)
    settings_changed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    unmatched: list[str] = field(default_factory=list)
    profile_written: bool = False
    settings_written: bool = False

    @property
    def changed(self) -> bool:
        return self.profile_written or self.settings_written

    def as_dict(self) -> dict[str, Any]:
        return {
            "profile_changed": list(self.profile_changed),
            "settings_changed": list(self.settings_changed),
            "skipped": list(self.skipped),
            "unmatched": list(self.unmatched),
            "profile_written": self.profile_written,
            "settings_written": self.settings_written,
        }


def _add(bucket: list[str], label: str) -> None:
    if label not in bucket:
        bucket.append(label)


def _id_set(value: Any) -> frozenset[int]:
    ids = as_u32_list(value)
    return frozenset(ids) if ids is not None else frozenset()


class Reconciler:
    def __init__(self, store: DocumentStore | None = None) -> None:
        self.store: DocumentStore = store or JsonDocumentStore()

    def apply(self, entries: Sequence[OptimizerEntry], mapping: SyncMapping) -> UpdateReport:
        lookup: dict[str, list[int]] = {}
        for e in entries:
            lookup[e.label] = list(e.ids)  # last one wins

        report = UpdateReport()
        matched: set[str] = set()
        errors: list[GearSyncError] = []

        try:
            self._update_profile(mapping.file_path, lookup, report, matched)
        except GearSyncError as e:
            log(f"profile update failed: {e}", level="ERROR", module="SYNC")
            errors.append(e)

        try:
            self._update_settings(mapping.settings_path, mapping.settings_mapper, lookup, report, matched)
        except GearSyncError as e:
            log(f"settings update failed: {e}", level="ERROR", module="SYNC")
            errors.append(e)

        for label in lookup:
            if label not in matched:
                _add(report.unmatched, label)
        # a label equal in one document but changed in the other counts as changed
        report.skipped = [x for x in report.skipped if x not in report.profile_changed and x not in report.settings_changed]

        if errors:
            raise ReconcileError(report, errors)
        return report

    def _update_profile(
        self,
        path: str,
        lookup: Mapping[str, list[int]],
        report: UpdateReport,
        matched: set[str],
    ) -> None:
        profile = self.store.load_profile(path)
        dirty = False
        for gear in profile.breakpoints.gear:
            label = gear.comment
            if label is None or label not in lookup:
                continue
            matched.add(label)
            ids = lookup[label]
            if frozenset(gear.ids) == frozenset(ids):
                _add(report.skipped, label)
                continue
            log(f"gear '{label}': {gear.ids} -> {ids}", level="DEBUG", module="SYNC")
            gear.ids = list(ids)
            _add(report.profile_changed, label)
            dirty = True

        if dirty:
            self.store.save_profile(path, profile)
            report.profile_written = True

    def _update_settings(
        self,
        path: str,
        settings_mapper: Mapping[str, str],
        lookup: Mapping[str, list[int]],
        report: UpdateReport,
        matched: set[str],
    ) -> None:
        settings = self.store.load_settings(path)
        dirty = False
        for label, setting in settings_mapper.items():
            if setting not in settings or label not in lookup:
                continue
            matched.add(label)
            ids = lookup[label]
            if _id_set(settings[setting]) == frozenset(ids):
                _add(report.skipped, label)
                continue
            log(f"setting '{setting}' ({label}): {settings[setting]} -> {ids}", level="DEBUG", module="SYNC")
            settings[setting] = list(ids)
            _add(report.settings_changed, label)
            dirty = True

        if dirty:
            self.store.save_settings(path, settings)
            report.settings_written = True


__all__ = ["DocumentStore", "UpdateReport", "Reconciler"]
