"""Audit ledger API: listing, appending, verification, and rejection of mutations."""

import dataclasses

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_bootstrap_is_audited(async_client: AsyncClient, root_headers):
    r = await async_client.get("/audit?action=CREATE_ROLE&limit=2", headers=root_headers)
    assert r.status_code == 200
    data = r.json()
    assert data["total"] == 5
    assert len(data["items"]) == 2
    assert all(item["actor_id"] == "system" for item in data["items"])


@pytest.mark.asyncio
async def test_append_uses_caller_as_actor(async_client: AsyncClient, root_headers):
    r = await async_client.post(
        "/audit",
        json={
            "actor_id": "spoofed",
            "action": "export_report",
            "entity_type": "report",
            "entity_id": "r-1",
            "outcome": "ok",
            "severity": "info",
            "details": {"rows": 120},
        },
        headers=root_headers,
    )
    assert r.status_code == 201
    record = r.json()
    assert record["actor_id"] == "root"
    assert record["action"] == "EXPORT"
    assert record["outcome"] == "success"
    assert record["severity"] == "low"
    assert record["details"] == {"rows": 120}
    assert record["previous_hash"] is not None


@pytest.mark.asyncio
async def test_verify_detects_tampering(async_client: AsyncClient, root_headers, services):
    r = await async_client.get("/audit/verify", headers=root_headers)
    assert r.json()["intact"] is True

    records = services.audit_chain._repository._records
    records[1] = dataclasses.replace(records[1], hash="0" * 64)

    r = await async_client.get("/audit/verify", headers=root_headers)
    data = r.json()
    assert data["intact"] is False
    assert [b["position"] for b in data["broken_links"]] == [3]
    assert [m["position"] for m in data["hash_mismatches"]] == [2]


@pytest.mark.asyncio
async def test_records_cannot_be_modified(async_client: AsyncClient, root_headers):
    assert (await async_client.put("/audit/1", headers=root_headers)).status_code == 405
    assert (await async_client.delete("/audit/1", headers=root_headers)).status_code == 405


@pytest.mark.asyncio
async def test_suspicious_activity(async_client: AsyncClient, root_headers, clerk_headers):
    await async_client.get("/audit", headers=clerk_headers)
    r = await async_client.get("/audit/suspicious?hours=1", headers=root_headers)
    assert r.status_code == 200
    denied = [item for item in r.json() if item["action"] == "ACCESS_DENIED"]
    assert denied[0]["actor_id"] == "clerk-1"
    assert denied[0]["entity_id"] == "audit_logs.view"


@pytest.mark.asyncio
async def test_listing_requires_audit_view(async_client: AsyncClient, clerk_headers):
    r = await async_client.get("/audit", headers=clerk_headers)
    assert r.status_code == 403
    assert r.json()["detail"] == "permission denied: audit_logs.view"
