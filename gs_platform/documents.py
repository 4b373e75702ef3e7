# gs_platform/documents.py
# GearSync - Profile and settings documents
# Copyright (c) 2025-2026 GearSync
"""
Typed views over the two JSON documents the service rewrites.

The profile keeps its known fields (``Breakpoints.Gear[].ID`` and
``.Comment``) typed; everything else lives in an ``extra`` remainder that is
merged back on serialization, in the key order the file was read with.
The settings document is an arbitrary JSON object and stays a plain dict.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from .errors import DocumentIOError, DocumentParseError

U32_MAX = 2**32 - 1

_BREAKPOINTS = "Breakpoints"
_GEAR = "Gear"
_ID = "ID"
_COMMENT = "Comment"


def is_u32(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= U32_MAX


def as_u32_list(value: Any) -> list[int] | None:
    if not isinstance(value, list):
        return None
    if not all(is_u32(x) for x in value):
        return None
    return list(value)


def _merge(order: Iterable[str], extra: dict[str, Any], known: dict[str, Any]) -> dict[str, Any]:
    # known keys go back where they were read; new known keys go last
    out: dict[str, Any] = {}
    for k in order:
        if k in known:
            out[k] = known[k]
        elif k in extra:
            out[k] = extra[k]
    for k, v in extra.items():
        out.setdefault(k, v)
    for k, v in known.items():
        out.setdefault(k, v)
    return out


@dataclass
class GearEntry:
    ids: list[int]
    comment: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    key_order: tuple[str, ...] = ()

    @classmethod
    def from_json(cls, raw: Any, *, where: str) -> "GearEntry":
        if not isinstance(raw, dict):
            raise ValueError(f"{where}: gear entry is not an object")
        ids = as_u32_list(raw.get(_ID))
        if ids is None:
            raise ValueError(f"{where}.{_ID}: expected an array of u32")
        comment = raw.get(_COMMENT)
        if comment is not None and not isinstance(comment, str):
            raise ValueError(f"{where}.{_COMMENT}: expected a string or null")
        extra = {k: v for k, v in raw.items() if k not in (_ID, _COMMENT)}
        return cls(ids=ids, comment=comment, extra=extra, key_order=tuple(raw.keys()))

    def to_json(self) -> dict[str, Any]:
        known: dict[str, Any] = {_ID: list(self.ids)}
        if self.comment is not None or _COMMENT in self.key_order:
            known[_COMMENT] = self.comment
        return _merge(self.key_order, self.extra, known)


@dataclass
class Breakpoints:
    gear: list[GearEntry] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)
    key_order: tuple[str, ...] = ()

    @classmethod
    def from_json(cls, raw: Any) -> "Breakpoints":
        if not isinstance(raw, dict):
            raise ValueError(f"{_BREAKPOINTS}: expected an object")
        gear_raw = raw.get(_GEAR)
        if not isinstance(gear_raw, list):
            raise ValueError(f"{_BREAKPOINTS}.{_GEAR}: expected an array")
        gear = [GearEntry.from_json(g, where=f"{_BREAKPOINTS}.{_GEAR}[{i}]") for i, g in enumerate(gear_raw)]
        extra = {k: v for k, v in raw.items() if k != _GEAR}
        return cls(gear=gear, extra=extra, key_order=tuple(raw.keys()))

    def to_json(self) -> dict[str, Any]:
        return _merge(self.key_order, self.extra, {_GEAR: [g.to_json() for g in self.gear]})


@dataclass
class Profile:
    breakpoints: Breakpoints
    extra: dict[str, Any] = field(default_factory=dict)
    key_order: tuple[str, ...] = ()

    @classmethod
    def from_json(cls, raw: Any) -> "Profile":
        if not isinstance(raw, dict):
            raise ValueError("profile root is not an object")
        if _BREAKPOINTS not in raw:
            raise ValueError(f"missing {_BREAKPOINTS}")
        bp = Breakpoints.from_json(raw[_BREAKPOINTS])
        extra = {k: v for k, v in raw.items() if k != _BREAKPOINTS}
        return cls(breakpoints=bp, extra=extra, key_order=tuple(raw.keys()))

    def to_json(self) -> dict[str, Any]:
        return _merge(self.key_order, self.extra, {_BREAKPOINTS: self.breakpoints.to_json()})


# ------------------------------------------------------------
# File I/O
# ------------------------------------------------------------
def reject_json_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def _read_json(path: str | Path) -> Any:
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise DocumentIOError(p, f"read failed: {e}") from e
    try:
        return json.loads(text, parse_constant=reject_json_constant)
    except (ValueError, RecursionError) as e:
        raise DocumentParseError(p, f"invalid JSON: {e}") from e


def _write_json(path: str | Path, data: Any) -> None:
    # whole-file replace; not crash safe
    p = Path(path)
    try:
        text = json.dumps(data, indent=2, ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError, RecursionError) as e:
        raise DocumentParseError(p, f"serialize failed: {e}") from e
    try:
        with p.open("w", encoding="utf-8", newline="\n") as f:
            f.write(text)
    except OSError as e:
        raise DocumentIOError(p, f"write failed: {e}") from e


def load_profile(path: str | Path) -> Profile:
    raw = _read_json(path)
    try:
        return Profile.from_json(raw)
    except ValueError as e:
        raise DocumentParseError(path, str(e)) from e


def save_profile(path: str | Path, profile: Profile) -> None:
    _write_json(path, profile.to_json())


def load_settings(path: str | Path) -> dict[str, Any]:
    raw = _read_json(path)
    if not isinstance(raw, dict):
        raise DocumentParseError(path, "settings root is not an object")
    return raw


def save_settings(path: str | Path, settings: dict[str, Any]) -> None:
    _write_json(path, settings)


class JsonDocumentStore:
    """Default document backend used by the reconciler."""

    def load_profile(self, path: str | Path) -> Profile:
        return load_profile(path)

    def save_profile(self, path: str | Path, profile: Profile) -> None:
        save_profile(path, profile)

    def load_settings(self, path: str | Path) -> dict[str, Any]:
        return load_settings(path)

    def save_settings(self, path: str | Path, settings: dict[str, Any]) -> None:
        save_settings(path, settings)


__all__ = [
    "U32_MAX",
    "is_u32",
    "as_u32_list",
    "reject_json_constant",
    "GearEntry",
    "Breakpoints",
    "Profile",
    "load_profile",
    "save_profile",
    "load_settings",
    "save_settings",
    "JsonDocumentStore",
]
