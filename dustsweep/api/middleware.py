"""Security headers and request timing."""

from __future__ import annotations

import time

from fastapi import Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject security headers and log slow requests."""

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        started = time.monotonic()
        response: Response = await call_next(request)
        elapsed_ms = int((time.monotonic() - started) * 1000)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        response.headers["X-Response-Time"] = f"{elapsed_ms}ms"

        if elapsed_ms > 5000:
            logger.warning(f"[API] Slow request {request.method} {request.url.path}: {elapsed_ms}ms")
        return response
