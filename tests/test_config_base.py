# GearSync test scripts
from __future__ import annotations

from pathlib import Path

import pytest

from conftest import write_json
from gs_platform.config_base import config_path, load_config, load_mapping, runtime_from_config
from gs_platform.errors import ConfigError, DocumentIOError, DocumentParseError


def test_config_path_follows_config_base(config_base: Path) -> None:
    assert config_path() == (config_base / "settings.json").resolve()


def test_load_mapping_defaults_to_config_base(workspace: dict[str, Path]) -> None:
    m = load_mapping()
    base = workspace["base"].resolve()
    assert m.file_path == str(base / "profile.json")
    assert m.settings_path == str(base / "game_settings.json")
    assert dict(m.settings_mapper) == {"speed": "maxSpeed"}


def test_absolute_document_paths_are_kept(config_base: Path, tmp_path: Path) -> None:
    abs_profile = tmp_path / "elsewhere" / "p.json"
    cfg = write_json(
        config_base / "settings.json",
        {"filePath": str(abs_profile), "settingsPath": "s.json", "settingsMapper": {}},
    )
    assert load_mapping(cfg).file_path == str(abs_profile)


def test_runtime_defaults_are_merged(config_base: Path) -> None:
    cfg_path = write_json(
        config_base / "settings.json",
        {"filePath": "p.json", "settingsPath": "s.json", "settingsMapper": {}, "runtime": {"port": 8080}},
    )
    cfg = load_config(cfg_path)
    rt = runtime_from_config(cfg, path=cfg_path)
    assert rt.port == 8080
    assert rt.host == "0.0.0.0"
    assert rt.debounce_seconds == 1.0
    assert rt.log_json == ""


def test_invalid_runtime_raises_config_error(config_base: Path) -> None:
    cfg_path = write_json(config_base / "settings.json", {"runtime": {"port": 0}})
    with pytest.raises(ConfigError, match="runtime.port"):
        runtime_from_config(load_config(cfg_path), path=cfg_path)


@pytest.mark.parametrize(
    "doc",
    [
        {"settingsPath": "s.json", "settingsMapper": {}},
        {"filePath": "p.json", "settingsPath": "s.json"},
        {"filePath": "p.json", "settingsPath": "s.json", "settingsMapper": {"a": 1}},
        {"filePath": "p.json", "settingsPath": "s.json", "settingsMapper": []},
        ["not", "an", "object"],
    ],
)
def test_bad_mapping_raises_config_error(config_base: Path, doc) -> None:
    cfg_path = write_json(config_base / "settings.json", doc)
    with pytest.raises(ConfigError):
        load_mapping(cfg_path)


def test_missing_config_raises_io_error(config_base: Path) -> None:
    with pytest.raises(DocumentIOError):
        load_mapping()


def test_non_standard_constant_in_config_raises_parse_error(config_base: Path) -> None:
    cfg_path = config_base / "settings.json"
    cfg_path.write_text(
        '{"filePath": "p.json", "settingsPath": "s.json", "settingsMapper": {}, "runtime": {"poll_seconds": NaN}}',
        encoding="utf-8",
    )
    with pytest.raises(DocumentParseError):
        load_config(cfg_path)
