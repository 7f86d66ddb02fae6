# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for health endpoints and request middleware."""

from unittest.mock import AsyncMock, MagicMock, patch

from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from src.api.middleware import CallerIdentityMiddleware, RequestContextMiddleware
from src.api.middleware.auth import get_current_user
from src.infrastructure.cache import RedisError


def _redis(ping: bool) -> MagicMock:
    redis = MagicMock()
    redis.ping = AsyncMock(return_value=ping)
    return redis


class TestHealth:
    """Tests for /health and /health/ready."""

    @patch("src.api.routes.health.get_redis")
    @patch("src.api.routes.health.check_database_connection", new_callable=AsyncMock)
    def test_all_healthy(self, mock_db_check, mock_get_redis, client) -> None:
        mock_db_check.return_value = True
        mock_get_redis.return_value = _redis(True)

        response = client.get("/health")
        ready = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert ready.status_code == 200
        assert ready.json()["ready"] is True

    @patch("src.api.routes.health.get_redis")
    @patch("src.api.routes.health.check_database_connection", new_callable=AsyncMock)
    def test_redis_down_is_degraded(self, mock_db_check, mock_get_redis, client) -> None:
        mock_db_check.return_value = True
        mock_get_redis.side_effect = RedisError("Redis not initialized")

        response = client.get("/health")
        ready = client.get("/health/ready")

        assert response.json()["status"] == "degraded"
        assert response.json()["components"]["redis"]["status"] == "unhealthy"
        assert ready.status_code == 503
        assert ready.json()["ready"] is False

    @patch("src.api.routes.health.get_redis")
    @patch("src.api.routes.health.check_database_connection", new_callable=AsyncMock)
    def test_everything_down(self, mock_db_check, mock_get_redis, client) -> None:
        mock_db_check.return_value = False
        mock_get_redis.return_value = _redis(False)

        response = client.get("/health")

        assert response.json()["status"] == "unhealthy"


class TestMiddleware:
    """Tests for caller identity and request context middleware."""

    @staticmethod
    def _app() -> FastAPI:
        app = FastAPI()
        app.add_middleware(CallerIdentityMiddleware)
        app.add_middleware(RequestContextMiddleware)

        @app.get("/whoami")
        async def whoami(request: Request) -> dict:
            user = get_current_user(request)
            return {"id": user.id, "role": user.role} if user else {}

        return app

    def test_identity_headers_populate_user(self) -> None:
        client = TestClient(self._app())

        response = client.get("/whoami", headers={"X-User-Id": "u1", "X-User-Role": "Teacher"})

        assert response.json() == {"id": "u1", "role": "teacher"}

    def test_unknown_role_ignored(self) -> None:
        client = TestClient(self._app())

        response = client.get("/whoami", headers={"X-User-Id": "u1", "X-User-Role": "root"})

        assert response.json() == {}

    def test_request_id_echoed(self) -> None:
        client = TestClient(self._app())

        response = client.get("/whoami", headers={"X-Request-ID": "req-42"})

        assert response.headers["X-Request-ID"] == "req-42"

    def test_request_id_generated(self) -> None:
        client = TestClient(self._app())

        response = client.get("/whoami")

        assert response.headers["X-Request-ID"]

    def test_unknown_route_uses_envelope(self, client) -> None:
        response = client.get("/api/v1/nothing-here")

        assert response.status_code == 404
        assert response.json()["success"] is False
