from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gs_platform.handler import OptimizerHandler

from .optimizerAPI import router as optimizer_router

__all__ = [
    "optimizer_router",
    "register",
]

def register(app: FastAPI, handler: OptimizerHandler) -> None:
    app.state.handler = handler
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(optimizer_router)
