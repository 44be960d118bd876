"""Health and readiness probe endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request

from .. import __version__

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request) -> dict[str, Any]:
    hub = request.app.state.hub
    return {
        "ok": True,
        "channels": len(hub),
        "connections": hub.total_connections(),
        "version": __version__,
    }


@router.get("/readyz")
async def readyz(request: Request) -> dict[str, bool]:
    hub = request.app.state.hub
    return {"ok": all(not channel.closed for _, channel in hub)}
