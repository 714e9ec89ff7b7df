"""
Unit Tests for health and root endpoints
"""
import pytest


class TestHealth:
    @pytest.mark.asyncio
    async def test_root(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["verify"] == "/verify/{certificate_id}"

    @pytest.mark.asyncio
    async def test_request_id_header(self, client):
        response = await client.get("/", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"
        assert "X-Response-Time" in response.headers

    @pytest.mark.asyncio
    async def test_health_reports_database(self, client):
        response = await client.get("/api/v1/health")

        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "achievr-backend"
        assert data["database"]["status"] == "healthy"
        assert data["database"]["tables_ready"] is True
