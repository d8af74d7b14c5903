"""Regression tests for RequestBodyLimitMiddleware."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from stackmap.api.app import create_app
from stackmap.api.deps import init_session_manager, reset_session_manager
from stackmap.service.session_manager import SessionManager
from stackmap.settings import Settings


@pytest.fixture
def app():
    settings = Settings(session_ttl_seconds=3600, session_cleanup_interval=9999)
    application = create_app(settings=settings)
    mgr = SessionManager(
        ttl_seconds=settings.session_ttl_seconds,
        cleanup_interval=settings.session_cleanup_interval,
    )
    init_session_manager(mgr)
    yield application
    reset_session_manager()


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


class TestInvalidContentLength:
    """Non-integer Content-Length must not cause a 500."""

    async def test_non_integer_content_length(self, client: AsyncClient) -> None:
        response = await client.post(
            "/health",
            content=b"small body",
            headers={"content-length": "not-a-number"},
        )
        assert response.status_code != 500

    async def test_negative_content_length(self, client: AsyncClient) -> None:
        response = await client.post(
            "/health",
            content=b"small body",
            headers={"content-length": "-1"},
        )
        assert response.status_code != 500


class TestLimits:
    async def test_declared_length_over_default_limit(self, client: AsyncClient) -> None:
        response = await client.post(
            "/resolve/parse",
            content=b"{}",
            headers={"content-length": str(2 * 1024 * 1024)},
        )
        assert response.status_code == 413
        assert "max 1 MB" in response.json()["detail"]

    async def test_chunked_body_over_default_limit(self, client: AsyncClient) -> None:
        oversized = b"x" * (1 * 1024 * 1024 + 1)
        response = await client.post(
            "/sessions",
            content=oversized,
            headers={"transfer-encoding": "chunked"},
        )
        assert response.status_code == 413
        assert "too large" in response.json()["detail"]

    async def test_sourcemap_endpoint_allows_larger_body(self, client: AsyncClient) -> None:
        # Over 1 MB but under 20 MB: passes the limit, then fails JSON validation
        oversized = b"x" * (2 * 1024 * 1024)
        response = await client.post(
            "/resolve/lookup",
            content=oversized,
            headers={"content-type": "application/json"},
        )
        assert response.status_code == 422

    async def test_sourcemap_endpoint_limit(self, client: AsyncClient) -> None:
        response = await client.post(
            "/resolve/stack",
            content=b"{}",
            headers={"content-length": str(21 * 1024 * 1024)},
        )
        assert response.status_code == 413
        assert "max 20 MB" in response.json()["detail"]


class TestConfiguredLimits:
    async def test_default_limit_from_settings(self) -> None:
        app = create_app(settings=Settings(max_body_mb=2))
        init_session_manager(SessionManager(ttl_seconds=3600, cleanup_interval=9999))
        try:
            transport = ASGITransport(app=app)
            async with AsyncClient(transport=transport, base_url="http://test") as c:
                under = await c.post(
                    "/resolve/parse",
                    content=b"{}",
                    headers={"content-length": str(int(1.5 * 1024 * 1024))},
                )
                over = await c.post(
                    "/resolve/parse",
                    content=b"{}",
                    headers={"content-length": str(3 * 1024 * 1024)},
                )
        finally:
            reset_session_manager()
        assert under.status_code != 413
        assert over.status_code == 413
        assert "max 2 MB" in over.json()["detail"]
