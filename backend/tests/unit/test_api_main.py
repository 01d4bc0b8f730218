"""Tests for FastAPI application, exception handlers and lifespan."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.errors import (
    ConflictError,
    InternalError,
    InvalidTicketError,
    NotFoundError,
    RateLimitedError,
    StoreUnavailableError,
    UnauthorizedError,
    ValidationError,
)
from app.main import create_app, lifespan

_ORIGIN = "http://localhost:5173"


@pytest.fixture
def app():
    """Create test application instance."""
    return create_app()


@pytest.fixture
async def client(app):
    """Create async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class TestHealthEndpoint:
    async def test_health_returns_healthy_status(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestAPIVersioning:
    async def test_v1_router_mounted(self, client):
        """404 means the router is mounted but the route doesn't exist."""
        response = await client.get("/api/v1/nonexistent")
        assert response.status_code == 404


class TestExceptionHandlers:
    """Custom exceptions render in the {"error": {...}} envelope."""

    @pytest.mark.parametrize(
        ("exc", "status", "code"),
        [
            (ValidationError("Invalid input"), 400, "VALIDATION_ERROR"),
            (UnauthorizedError(), 401, "UNAUTHORIZED"),
            (NotFoundError("Notification"), 404, "NOT_FOUND"),
            (
                ConflictError("EMAIL_ALREADY_EXISTS", "Taken"),
                409,
                "EMAIL_ALREADY_EXISTS",
            ),
            (RateLimitedError(), 429, "RATE_LIMITED"),
            (InvalidTicketError(), 400, "INVALID_TICKET"),
            (StoreUnavailableError("insert"), 503, "STORE_UNAVAILABLE"),
            (InternalError(), 500, "INTERNAL_ERROR"),
        ],
    )
    async def test_api_errors_map_to_status(self, app, client, exc, status, code):
        @app.get("/test/raise")
        async def raise_error():
            raise exc

        response = await client.get("/test/raise")

        assert response.status_code == status
        data = response.json()
        assert data["error"]["code"] == code
        assert "message" in data["error"]
        assert "data" not in data

    async def test_validation_details_are_kept(self, app, client):
        @app.get("/test/validation-details")
        async def raise_validation_error():
            raise ValidationError("Invalid input", details=[{"field": "email"}])

        response = await client.get("/test/validation-details")

        assert response.json()["error"]["details"] == [{"field": "email"}]

    async def test_unhandled_exception_is_generic_500(self, app):
        @app.get("/test/boom")
        async def boom():
            raise RuntimeError("connection to prod-db-01 refused")

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.get("/test/boom")

        assert response.status_code == 500
        body = response.json()
        assert body["error"]["code"] == "INTERNAL_ERROR"
        assert "prod-db-01" not in response.text


class TestCORSMiddleware:
    async def test_cors_allows_configured_origin(self, client):
        response = await client.options(
            "/health",
            headers={"Origin": _ORIGIN, "Access-Control-Request-Method": "GET"},
        )
        assert response.status_code == 200
        assert response.headers.get("access-control-allow-origin") == _ORIGIN

    async def test_cors_denies_unconfigured_origin(self):
        with patch("app.main.settings.allowed_origins", ["http://allowed-origin.com"]):
            test_app = create_app()
            transport = ASGITransport(app=test_app)
            async with AsyncClient(transport=transport, base_url="http://test") as ac:
                response = await ac.options(
                    "/health",
                    headers={
                        "Origin": "http://malicious-site.com",
                        "Access-Control-Request-Method": "GET",
                    },
                )
        allowed_origin = response.headers.get("access-control-allow-origin")
        assert allowed_origin != "http://malicious-site.com"


class TestSecurityHeadersMiddleware:
    async def test_static_headers(self, client):
        response = await client.get("/health")
        assert response.headers["x-frame-options"] == "DENY"
        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["referrer-policy"] == "strict-origin-when-cross-origin"
        assert "frame-ancestors 'none'" in response.headers["content-security-policy"]

    async def test_cache_control_only_on_api(self, client):
        health = await client.get("/health")
        api = await client.get("/api/v1/nonexistent")
        assert "cache-control" not in health.headers
        assert api.headers["cache-control"] == "no-store, max-age=0"

    async def test_hsts_only_in_production(self, client, monkeypatch):
        from app.core.config import settings

        assert "strict-transport-security" not in (
            await client.get("/health")
        ).headers

        monkeypatch.setattr(settings, "environment", "production")
        response = await client.get("/health")
        assert "max-age=31536000" in response.headers["strict-transport-security"]


class TestLifespan:
    async def test_starts_and_stops_sweeper(self, app, monkeypatch):
        from app.core.config import settings

        monkeypatch.setattr(settings, "sweep_enabled", True)
        sweeper = MagicMock()
        sweeper.stop = AsyncMock()

        with (
            patch("app.main.build_sweeper", return_value=sweeper),
            patch("app.main.dispose_engine", new=AsyncMock()) as dispose,
        ):
            async with lifespan(app):
                sweeper.start.assert_called_once()
                assert app.state.sweeper is sweeper

        sweeper.stop.assert_awaited_once()
        dispose.assert_awaited_once()

    async def test_sweeper_disabled(self, app, monkeypatch):
        from app.core.config import settings

        monkeypatch.setattr(settings, "sweep_enabled", False)

        with (
            patch("app.main.build_sweeper") as build,
            patch("app.main.dispose_engine", new=AsyncMock()),
        ):
            async with lifespan(app):
                assert app.state.sweeper is None

        build.assert_not_called()
