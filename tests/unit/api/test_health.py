"""Tests for GET /health: 200 without identity, optional tenant, correlation ID in response."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health_returns_200_without_headers(async_client: AsyncClient):
    r = await async_client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert data["tenant_id"] is None
    assert data["environment"] == "test"
    assert data["version"] == "0.1.0"


@pytest.mark.asyncio
async def test_health_echoes_tenant(async_client: AsyncClient):
    r = await async_client.get("/health", headers={"X-Tenant-ID": "t1"})
    assert r.json()["tenant_id"] == "t1"


@pytest.mark.asyncio
async def test_health_correlation_id_auto_generated(async_client: AsyncClient):
    r = await async_client.get("/health")
    assert len(r.json()["correlation_id"]) > 0
