"""Middleware: request timing, security headers, body size limits."""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

_MB = 1024 * 1024

# Endpoints whose bodies carry whole source maps (often several MB with sourcesContent)
SOURCEMAP_PATH_SUFFIXES = (
    "/sourcemaps",
    "/resolve/stack",
    "/resolve/lookup",
    "/resolve/error-stack",
    "/resolve/validate",
)


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """Add X-Request-Duration-Ms header with processing time."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start = time.monotonic()
        response = await call_next(request)
        response.headers["X-Request-Duration-Ms"] = f"{(time.monotonic() - start) * 1000:.1f}"
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """JSON-only API: forbid sniffing and framing."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Content-Security-Policy"] = "default-src 'self'; frame-ancestors 'none'"
        return response


class RequestBodyLimitMiddleware(BaseHTTPMiddleware):
    """Reject oversized request bodies with 413.

    Paths ending in one of :data:`SOURCEMAP_PATH_SUFFIXES` get
    ``sourcemap_limit_mb``; everything else gets ``default_limit_mb``.

    A declared Content-Length over the limit is rejected up front.  Otherwise
    the body is streamed and counted, so chunked uploads can't slip past; the
    bytes read are cached on ``request._body`` for the endpoint.
    """

    def __init__(
        self, app: ASGIApp, *, sourcemap_limit_mb: int = 20, default_limit_mb: int = 1
    ) -> None:
        super().__init__(app)
        self._sourcemap_limit_mb = sourcemap_limit_mb
        self._default_limit_mb = default_limit_mb

    def limit_mb_for(self, path: str) -> int:
        if path.endswith(SOURCEMAP_PATH_SUFFIXES):
            return self._sourcemap_limit_mb
        return self._default_limit_mb

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        limit_mb = self.limit_mb_for(request.url.path)
        limit = limit_mb * _MB

        # Malformed Content-Length values fall through to the streaming check
        declared = request.headers.get("content-length")
        if declared is not None and declared.isdigit() and int(declared) > limit:
            return _too_large(limit_mb)

        if request.method in ("POST", "PUT", "PATCH"):
            body = bytearray()
            async for chunk in request.stream():
                body.extend(chunk)
                if len(body) > limit:
                    return _too_large(limit_mb)
            request._body = bytes(body)  # noqa: SLF001

        return await call_next(request)


def _too_large(limit_mb: int) -> JSONResponse:
    return JSONResponse(
        status_code=413,
        content={"detail": f"Request body too large (max {limit_mb} MB)"},
    )
