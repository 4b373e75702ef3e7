# GearSync test scripts
from __future__ import annotations

import json
import sys
import threading
import time
from pathlib import Path
from typing import Any

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from gs_platform.documents import JsonDocumentStore  # noqa: E402

PROFILE: dict[str, Any] = {
    "Version": 3,
    "Breakpoints": {
        "Time": 1,
        "Gear": [
            {"Time": 0, "ID": [1, 2, 3], "Comment": "speed", "foo": 42},
            {"Time": 60, "ID": [4, 5], "Comment": "torque"},
            {"Time": 120, "ID": [9]},
        ],
        "Wandoos": [{"Time": 0, "OS": 1}],
    },
    "Misc": {"foo": 42},
}

SETTINGS: dict[str, Any] = {
    "maxSpeed": [1, 2, 3],
    "maxTorque": [7],
    "Other": "keep me",
}


def write_json(p: Path, data: Any) -> Path:
    p.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return p


def read_json(p: Path) -> Any:
    return json.loads(p.read_text(encoding="utf-8"))


class CountingStore(JsonDocumentStore):
    """Real file I/O, plus save counters and an overlap detector."""

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.profile_saves = 0
        self.settings_saves = 0
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def _enter(self) -> None:
        with self._lock:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        if self.delay:
            time.sleep(self.delay)

    def _leave(self) -> None:
        with self._lock:
            self.in_flight -= 1

    def save_profile(self, path, profile) -> None:
        self._enter()
        try:
            self.profile_saves += 1
            super().save_profile(path, profile)
        finally:
            self._leave()

    def save_settings(self, path, settings) -> None:
        self._enter()
        try:
            self.settings_saves += 1
            super().save_settings(path, settings)
        finally:
            self._leave()

    @property
    def saves(self) -> int:
        return self.profile_saves + self.settings_saves


@pytest.fixture()
def config_base(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("CONFIG_BASE", str(tmp_path))
    return tmp_path


@pytest.fixture()
def workspace(config_base: Path) -> dict[str, Path]:
    profile = write_json(config_base / "profile.json", PROFILE)
    settings = write_json(config_base / "game_settings.json", SETTINGS)
    config = write_json(
        config_base / "settings.json",
        {
            "filePath": "profile.json",
            "settingsPath": "game_settings.json",
            "settingsMapper": {"speed": "maxSpeed"},
            "runtime": {"debounce_seconds": 0.05, "poll_seconds": 0.01},
        },
    )
    return {"profile": profile, "settings": settings, "config": config, "base": config_base}


@pytest.fixture()
def store() -> CountingStore:
    return CountingStore()
