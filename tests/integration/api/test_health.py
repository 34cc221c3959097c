"""Integration tests for health endpoints."""

import pytest


pytestmark = pytest.mark.integration


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    async def test_liveness(self, client):
        response = await client.get("/health/live")

        assert response.status_code == 200
        assert response.json() == {"status": "alive"}

    async def test_readiness(self, client):
        response = await client.get("/health/ready")

        assert response.status_code == 200
        assert response.json() == {"status": "ready", "checks": {"database": "ok"}}

    async def test_info(self, client):
        response = await client.get("/info")

        assert response.status_code == 200
        assert response.json()["app"] == "Taller Access Control"

    async def test_request_id_is_echoed(self, client):
        response = await client.get("/health/live", headers={"X-Request-ID": "req-abc"})

        assert response.headers["X-Request-ID"] == "req-abc"
