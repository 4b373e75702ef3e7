# api/optimizerAPI.py
# GearSync - Optimizer result endpoint
# Copyright (c) 2025-2026 GearSync
from __future__ import annotations

from fastapi import APIRouter, Request, Response
from fastapi.concurrency import run_in_threadpool

router = APIRouter(tags=["optimizer"])


@router.post("/")
async def api_optimizer_update(request: Request) -> Response:
    raw = await request.body()
    handler = request.app.state.handler
    status = await run_in_threadpool(handler.handle, raw)
    return Response(status_code=status)
