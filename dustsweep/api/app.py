"""FastAPI application factory for the consolidation API."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi.errors import RateLimitExceeded
from starlette.middleware.cors import CORSMiddleware

from config.settings import settings
from dustsweep.api.limits import limiter
from dustsweep.api.middleware import SecurityHeadersMiddleware
from dustsweep.api.registry import ServiceRegistry
from dustsweep.api.responses import error_response, internal_error_response
from dustsweep.core.background import drain
from dustsweep.core.errors import DustSweepError, RateLimitError, ValidationError

API_VERSION = "0.1.0"


def _retry_after(exc: RateLimitExceeded) -> int:
    item = getattr(getattr(exc, "limit", None), "limit", None)
    try:
        return int(item.get_expiry()) if item is not None else 60
    except (AttributeError, TypeError, ValueError):
        return 60


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DustSweepError)
    async def dustsweep_error_handler(request: Request, exc: DustSweepError) -> JSONResponse:
        logger.info(f"[API] {request.method} {request.url.path} -> {exc.code.name}: {exc.message}")
        headers = None
        if isinstance(exc, RateLimitError):
            headers = {"Retry-After": str(exc.retry_after)}
        return error_response(exc, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()
        )
        return error_response(ValidationError(problems or "Invalid request"))

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        error = RateLimitError(f"Rate limit exceeded: {exc.detail}", retry_after=_retry_after(exc))
        return error_response(error, headers={"Retry-After": str(error.retry_after)})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.opt(exception=exc).error(f"[API] Unhandled error on {request.method} {request.url.path}")
        return internal_error_response()


def create_app(services: ServiceRegistry | None = None) -> FastAPI:
    """Build the FastAPI application.

    Without ``services`` the real provider clients are wired at startup and
    closed at shutdown; tests pass a registry of fakes instead.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = services is None
        if owned:
            from dustsweep.services import build_services

            app.state.services = await build_services(settings)
        try:
            yield
        finally:
            await drain()
            if owned:
                await app.state.services.close()

    app = FastAPI(
        title="DustSweep API",
        version=API_VERSION,
        docs_url="/api/docs" if settings.api_debug else None,
        redoc_url=None,
        openapi_url="/api/openapi.json" if settings.api_debug else None,
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services

    app.state.limiter = limiter
    register_error_handlers(app)

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    from dustsweep.api.routers.consolidate import router as consolidate_router
    from dustsweep.api.routers.health import router as health_router
    from dustsweep.api.routers.risk import router as risk_router
    from dustsweep.api.routers.scan import router as scan_router

    app.include_router(health_router)
    app.include_router(scan_router)
    app.include_router(risk_router)
    app.include_router(consolidate_router)

    return app
