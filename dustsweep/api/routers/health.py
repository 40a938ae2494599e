"""Health check: no rate limit."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from dustsweep.api.dependencies import get_services
from dustsweep.api.registry import ServiceRegistry
from dustsweep.api.responses import ok
from dustsweep.core.background import pending_tasks

router = APIRouter(prefix="/api/v1", tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_sec: int
    cache_ok: bool
    background_tasks: int


@router.get("/health")
async def health_check(
    request: Request, services: ServiceRegistry = Depends(get_services)
) -> dict[str, Any]:
    """Check cache connectivity."""
    cache_ok = await services.store.ping()
    return ok(
        HealthResponse(
            status="ok" if cache_ok else "degraded",
            version=request.app.version,
            uptime_sec=services.uptime_sec,
            cache_ok=cache_ok,
            background_tasks=pending_tasks(),
        )
    )
