"""Tests for health check endpoints."""

import pytest
from httpx import AsyncClient

from faceroster.core.correlation import CORRELATION_HEADER


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient) -> None:
    """Test basic health check endpoint returns healthy status."""
    response = await client.get("/api/health")

    assert response.status_code == 200
    data = response.json()
    assert data["data"]["status"] == "healthy"
    assert data["data"]["service"] == "faceroster-backend"


@pytest.mark.asyncio
async def test_readiness_check(client: AsyncClient) -> None:
    """Test readiness check endpoint returns status with checks."""
    response = await client.get("/api/health/ready")

    assert response.status_code == 200
    data = response.json()
    assert data["data"]["status"] in ("ready", "not_ready")
    assert "supabase_configured" in data["data"]["checks"]
    assert "gemini_configured" in data["data"]["checks"]


@pytest.mark.asyncio
async def test_root_endpoint(client: AsyncClient) -> None:
    """Test root endpoint returns welcome message."""
    response = await client.get("/")

    assert response.status_code == 200
    data = response.json()
    assert "FaceRoster" in data["message"]
    assert data["health"] == "/api/health"


@pytest.mark.asyncio
async def test_correlation_header_is_echoed(client: AsyncClient) -> None:
    """Test a supplied correlation ID is returned on the response."""
    response = await client.get("/api/health", headers={CORRELATION_HEADER: "corr-123"})

    assert response.headers[CORRELATION_HEADER] == "corr-123"
