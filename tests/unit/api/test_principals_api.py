"""Principal administration API: register, assign, override, deactivate."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_register_and_get(async_client: AsyncClient, root_headers):
    r = await async_client.post(
        "/principals",
        json={"principal_id": "legacy-1", "legacy_permissions": {"orders": True}, "tenant_id": "t-9"},
        headers=root_headers,
    )
    assert r.status_code == 201
    r = await async_client.get("/principals/legacy-1", headers=root_headers)
    assert r.json() == {
        "principal_id": "legacy-1",
        "role_slugs": [],
        "overrides": {},
        "is_active": True,
        "tenant_id": "t-9",
    }
    r = await async_client.get("/authz/principals/legacy-1/permissions", headers=root_headers)
    assert r.json()["permissions"] == {"orders": "rcude"}


@pytest.mark.asyncio
async def test_assign_and_revoke_role(async_client: AsyncClient, root_headers, clerk):
    r = await async_client.put("/principals/clerk-1/roles/platform-auditor", headers=root_headers)
    assert r.status_code == 200
    assert r.json()["role_slugs"] == ["order-desk", "platform-auditor"]
    r = await async_client.delete("/principals/clerk-1/roles/order-desk", headers=root_headers)
    assert r.json()["role_slugs"] == ["platform-auditor"]
    assert (await async_client.put("/principals/clerk-1/roles/ghost", headers=root_headers)).status_code == 404


@pytest.mark.asyncio
async def test_override_revokes_single_verb(async_client: AsyncClient, root_headers, clerk):
    r = await async_client.put(
        "/principals/clerk-1/overrides/orders", json={"value": {"create": False}}, headers=root_headers
    )
    assert r.status_code == 200
    r = await async_client.get("/authz/principals/clerk-1/permissions", headers=root_headers)
    assert r.json()["permissions"] == {"orders": "ru"}

    await async_client.delete("/principals/clerk-1/overrides/orders", headers=root_headers)
    r = await async_client.get("/authz/principals/clerk-1/permissions", headers=root_headers)
    assert r.json()["permissions"] == {"orders": "rcu"}


@pytest.mark.asyncio
async def test_undecodable_override_is_422(async_client: AsyncClient, root_headers, clerk):
    r = await async_client.put("/principals/clerk-1/overrides/orders", json={"value": 3}, headers=root_headers)
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_deactivate_and_reactivate(async_client: AsyncClient, root_headers, clerk):
    r = await async_client.post("/principals/clerk-1/deactivate", headers=root_headers)
    assert r.json()["is_active"] is False
    r = await async_client.post("/principals/clerk-1/reactivate", headers=root_headers)
    assert r.json()["is_active"] is True


@pytest.mark.asyncio
async def test_clerk_cannot_administer_principals(async_client: AsyncClient, clerk_headers):
    r = await async_client.post("/principals/clerk-1/deactivate", headers=clerk_headers)
    assert r.status_code == 403
