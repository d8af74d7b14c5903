"""FastAPI application factory for stackmap."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from stackmap import __version__
from stackmap.api.deps import init_session_manager, reset_session_manager
from stackmap.api.middleware import (
    RequestBodyLimitMiddleware,
    RequestTimingMiddleware,
    SecurityHeadersMiddleware,
)
from stackmap.api.routers import resolve, sessions
from stackmap.api.schemas import ErrorResponse, HealthResponse
from stackmap.mapping.decoder import MappingDocumentInvalid
from stackmap.service.session_manager import SessionManager
from stackmap.settings import Settings

logger = logging.getLogger("stackmap.api")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Start/stop the SessionManager alongside the application."""
    settings: Settings = app.state.settings
    mgr = SessionManager(
        ttl_seconds=settings.session_ttl_seconds,
        cleanup_interval=settings.session_cleanup_interval,
    )
    mgr.start()
    init_session_manager(mgr, disable_session_list=settings.disable_session_list)
    try:
        yield
    finally:
        mgr.stop()
        reset_session_manager()


async def _invalid_sourcemap_handler(request: Request, exc: Exception) -> JSONResponse:
    reason = exc.reason if isinstance(exc, MappingDocumentInvalid) else str(exc)
    logger.info("rejected invalid sourcemap on %s: %s", request.url.path, reason)
    body = ErrorResponse(error="invalid_sourcemap", message=str(exc))
    return JSONResponse(status_code=422, content=body.model_dump())


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        settings = Settings()

    app = FastAPI(
        title="stackmap",
        description="Resolves minified JavaScript stack traces to original sources.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Middleware
    app.add_middleware(
        RequestBodyLimitMiddleware,
        sourcemap_limit_mb=settings.max_sourcemap_body_mb,
        default_limit_mb=settings.max_body_mb,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestTimingMiddleware)

    app.add_exception_handler(MappingDocumentInvalid, _invalid_sourcemap_handler)

    # Stateless endpoints
    app.include_router(resolve.router, prefix="/resolve", tags=["resolve"])

    # Session-scoped endpoints
    app.include_router(sessions.router, prefix="/sessions", tags=["sessions"])

    @app.get("/health", response_model=HealthResponse, tags=["health"])
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", version=__version__)

    return app


def main() -> None:
    """Run the REST API server using settings from environment / .env file."""
    settings = Settings()

    logging.basicConfig(level=settings.log_level.upper())
    logger.info(
        "stackmap API Server v%s starting (host=%s, port=%d)",
        __version__, settings.api_server_host, settings.effective_port,
    )

    uvicorn.run(
        "stackmap.api.app:create_app",
        factory=True,
        host=settings.api_server_host,
        port=settings.effective_port,
        log_level=settings.log_level.lower(),
    )
