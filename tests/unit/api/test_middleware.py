"""Tests for API middleware: correlation ID, optional tenant, access log."""

import logging

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_correlation_id_generated(async_client: AsyncClient):
    """When X-Correlation-ID is not sent, response has a generated correlation ID."""
    r = await async_client.get("/health")
    assert r.status_code == 200
    assert len(r.headers["X-Correlation-ID"]) > 0


@pytest.mark.asyncio
async def test_correlation_id_preserved_when_passed(async_client: AsyncClient):
    """When X-Correlation-ID is sent, the same value is returned in response."""
    r = await async_client.get("/health", headers={"X-Correlation-ID": "my-correlation-123"})
    assert r.headers.get("X-Correlation-ID") == "my-correlation-123"
    assert r.json()["correlation_id"] == "my-correlation-123"


@pytest.mark.asyncio
async def test_blank_tenant_header_is_platform_level(async_client: AsyncClient):
    r = await async_client.get("/health", headers={"X-Tenant-ID": "   "})
    assert r.status_code == 200
    assert r.json()["tenant_id"] is None


@pytest.mark.asyncio
async def test_error_responses_carry_correlation_id(async_client: AsyncClient):
    r = await async_client.get("/roles", headers={"X-Correlation-ID": "c-401"})
    assert r.status_code == 401
    assert r.headers.get("X-Correlation-ID") == "c-401"


@pytest.mark.asyncio
async def test_access_log_written(async_client: AsyncClient, caplog):
    with caplog.at_level(logging.INFO, logger="access_ledger.api.middleware"):
        await async_client.get("/health")
    records = [r for r in caplog.records if r.getMessage() == "request_completed"]
    assert records and records[-1].path == "/health"
    assert records[-1].status_code == 200
