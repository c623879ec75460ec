"""
System routes

- GET /health - liveness
- GET /status - uptime and version
"""

import time

from fastapi import APIRouter, Depends, Request

from signal_relay.config import Settings
from signal_relay.dependencies import get_settings

router = APIRouter(tags=["system"])


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.get("/status")
async def status(request: Request, settings: Settings = Depends(get_settings)):
    return {
        "status": "ok",
        "uptime": round(time.monotonic() - request.app.state.started_at, 3),
        "timestamp": int(time.time() * 1000),
        "version": settings.version,
    }
