"""FastAPI dependency injection: wired services."""

from __future__ import annotations

from fastapi import Request

from dustsweep.api.registry import ServiceRegistry


def get_services(request: Request) -> ServiceRegistry:
    """Return the registry built at startup (or injected by tests)."""
    return request.app.state.services
