# /gearsync.py
# GearSync - Optimizer result to profile/settings sync service
# Copyright (c) 2025-2026 GearSync
from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import sys
import uvicorn

from fastapi import FastAPI

from api import register as register_api
from gs_platform.config_base import (
    RuntimeConfig,
    config_path,
    load_config,
    mapping_from_config,
    runtime_from_config,
)
from gs_platform.errors import DocumentIOError, GearSyncError
from gs_platform.handler import OptimizerHandler
from gs_platform.reconciler import DocumentStore, Reconciler
from gs_platform.state import MappingStore, ResultCache
from gs_platform.watcher import ConfigWatcher, ReloadController

from _logging import Logger, log


@dataclass
class Service:
    config_file: Path
    runtime: RuntimeConfig
    mappings: MappingStore
    cache: ResultCache
    handler: OptimizerHandler
    controller: ReloadController
    watcher: ConfigWatcher


def build_service(config_file: str | Path | None = None, *, store: Optional[DocumentStore] = None) -> Service:
    """Load the config (errors propagate: a bad startup config is fatal) and wire the core."""
    p = Path(config_file) if config_file is not None else config_path()
    cfg = load_config(p)
    mapping = mapping_from_config(cfg, path=p)
    runtime = runtime_from_config(cfg, path=p)

    mappings = MappingStore(mapping)
    cache = ResultCache()
    reconciler = Reconciler(store)
    controller = ReloadController(mappings, cache, reconciler)
    watcher = ConfigWatcher(
        p,
        controller.on_change,
        debounce_seconds=runtime.debounce_seconds,
        poll_seconds=runtime.poll_seconds,
    )
    return Service(
        config_file=p,
        runtime=runtime,
        mappings=mappings,
        cache=cache,
        handler=OptimizerHandler(mappings, cache, reconciler),
        controller=controller,
        watcher=watcher,
    )


def configure_logging(service: Service, logger: Logger = log) -> None:
    rt = service.runtime
    logger.set_debug(rt.debug)
    if not rt.log_json:
        return
    p = Path(rt.log_json).expanduser()
    if not p.is_absolute():
        p = service.config_file.resolve().parent / p
    try:
        logger.enable_json(str(p))
    except OSError as e:
        raise DocumentIOError(p, f"open failed: {e}") from e


def create_app(service: Service, *, watch: bool = True) -> FastAPI:
    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        if watch:
            service.watcher.start()
            log(f"watching {service.config_file}", module="WATCH")
        try:
            yield
        finally:
            if watch:
                service.watcher.stop()
                log("watcher stopped", module="WATCH")

    app = FastAPI(title="GearSync", lifespan=_lifespan)
    app.state.service = service
    register_api(app, service.handler)
    return app


# Entry point
def main(config_file: str | Path | None = None) -> None:
    if config_file is None and len(sys.argv) > 1:
        config_file = sys.argv[1]
    try:
        service = build_service(config_file)
        configure_logging(service)
    except GearSyncError as e:
        log(f"Loading config failed: {e}", level="ERROR", module="MAIN")
        raise SystemExit(1)

    rt = service.runtime
    m = service.mappings.current()

    print("\nGearSync running:")
    print(f"  Bind:     {rt.host}:{rt.port}")
    print(f"  Config:   {service.config_file}")
    print(f"  Profile:  {m.file_path}")
    print(f"  Settings: {m.settings_path}\n")

    try:
        uvicorn.run(
            create_app(service),
            host=rt.host,
            port=rt.port,
            log_level=("debug" if rt.debug else "warning"),
            access_log=rt.debug,
        )
    finally:
        log.close_json()


if __name__ == "__main__":
    main()
