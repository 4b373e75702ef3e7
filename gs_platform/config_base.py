# gs_platform/config_base.py
# GearSync - Configuration loading
# Copyright (c) 2025-2026 GearSync
from __future__ import annotations

import copy
import json
import os
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .documents import reject_json_constant
from .errors import ConfigError, DocumentIOError, DocumentParseError

CONFIG_FILE = "settings.json"

# ------------------------------------------------------------
# Base dir resolution
# ------------------------------------------------------------
def CONFIG_BASE() -> Path:
    """
    Determine the directory holding the config file.

    Priority:
      1) $CONFIG_BASE if set
      2) Current working directory
    """
    env = os.getenv("CONFIG_BASE")
    if env:
        return Path(env)
    return Path.cwd()


def config_path() -> Path:
    return (CONFIG_BASE() / CONFIG_FILE).resolve()


# Defaults for everything that is not the mapping itself
DEFAULT_CFG: Dict[str, Any] = {
    "runtime": {
        "host": "0.0.0.0",                              # Bind address for the HTTP endpoint
        "port": 3000,                                   # Bind port (the browser script posts to :3000)
        "debug": False,                                 # Verbose logging
        "debounce_seconds": 1.0,                        # Quiet period before a config edit triggers a reload
        "poll_seconds": 0.25,                           # How often the watcher stats the config file
        "log_json": "",                                 # Optional JSON-lines log file (relative to the config dir)
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


# ------------------------------------------------------------
# Schema
# ------------------------------------------------------------
class MappingConfig(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    file_path: str = Field(alias="filePath", min_length=1)
    settings_path: str = Field(alias="settingsPath", min_length=1)
    settings_mapper: Dict[str, str] = Field(alias="settingsMapper")


class RuntimeConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=1, le=65535)
    debug: bool = False
    debounce_seconds: float = Field(default=1.0, ge=0)
    poll_seconds: float = Field(default=0.25, gt=0)
    log_json: str = ""


@dataclass(frozen=True)
class SyncMapping:
    """Document paths plus optimizer label -> settings field translation."""

    file_path: str
    settings_path: str
    settings_mapper: Mapping[str, str]

    @classmethod
    def build(cls, file_path: str, settings_path: str, settings_mapper: Mapping[str, str]) -> "SyncMapping":
        return cls(
            file_path=str(file_path),
            settings_path=str(settings_path),
            settings_mapper=MappingProxyType(dict(settings_mapper)),
        )


def _first_error(e: ValidationError) -> str:
    errs = e.errors()
    if not errs:
        return str(e)
    err = errs[0]
    loc = ".".join(str(x) for x in err.get("loc", ())) or "<root>"
    return f"{loc}: {err.get('msg', 'invalid')}"


# ------------------------------------------------------------
# Public API
# ------------------------------------------------------------
def load_config(path: str | Path | None = None) -> Dict[str, Any]:
    """
    Read the config file and merge runtime defaults under it.
    """
    p = Path(path) if path is not None else config_path()
    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise DocumentIOError(p, f"read failed: {e}") from e
    try:
        user_cfg = json.loads(text, parse_constant=reject_json_constant)
    except (ValueError, RecursionError) as e:
        raise DocumentParseError(p, f"invalid JSON: {e}") from e
    if not isinstance(user_cfg, dict):
        raise ConfigError(p, "config root is not an object")
    return _deep_merge(DEFAULT_CFG, user_cfg)


def mapping_from_config(cfg: Mapping[str, Any], *, path: str | Path) -> SyncMapping:
    try:
        m = MappingConfig.model_validate(dict(cfg))
    except ValidationError as e:
        raise ConfigError(path, _first_error(e)) from e

    base = Path(path).resolve().parent

    def _resolve(doc: str) -> str:
        dp = Path(doc).expanduser()
        return str(dp if dp.is_absolute() else base / dp)

    return SyncMapping.build(_resolve(m.file_path), _resolve(m.settings_path), m.settings_mapper)


def runtime_from_config(cfg: Mapping[str, Any], *, path: str | Path) -> RuntimeConfig:
    try:
        return RuntimeConfig.model_validate(cfg.get("runtime") or {})
    except ValidationError as e:
        raise ConfigError(path, "runtime." + _first_error(e)) from e


def load_mapping(path: str | Path | None = None) -> SyncMapping:
    p = Path(path) if path is not None else config_path()
    return mapping_from_config(load_config(p), path=p)


__all__ = [
    "CONFIG_FILE",
    "CONFIG_BASE",
    "config_path",
    "DEFAULT_CFG",
    "MappingConfig",
    "RuntimeConfig",
    "SyncMapping",
    "load_config",
    "load_mapping",
    "mapping_from_config",
    "runtime_from_config",
]
