"""Authorization API: identity, effective permissions and allow/deny checks over HTTP."""

import pytest
from httpx import AsyncClient

from access_ledger.governance.audit_models import AuditAction, AuditQuery
from access_ledger.governance.role_registry import SYSTEM_ACTOR


@pytest.mark.asyncio
async def test_missing_or_unknown_principal_is_401(async_client: AsyncClient):
    assert (await async_client.get("/roles")).status_code == 401
    r = await async_client.get("/roles", headers={"X-Principal-ID": "ghost"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_effective_permissions(async_client: AsyncClient, root_headers, clerk):
    r = await async_client.get("/authz/principals/clerk-1/permissions", headers=root_headers)
    assert r.status_code == 200
    data = r.json()
    assert data["permissions"] == {"orders": "rcu"}
    assert data["all_access"] is False
    assert data["issues"] == []


@pytest.mark.asyncio
async def test_effective_permissions_for_super_admin(async_client: AsyncClient, root_headers):
    r = await async_client.get("/authz/principals/root/permissions", headers=root_headers)
    data = r.json()
    assert data["all_access"] is True
    assert data["permissions"]["orders"] == "rcude"


@pytest.mark.asyncio
async def test_effective_permissions_of_deactivated_principal_are_empty(
    async_client: AsyncClient, root_headers, clerk, services
):
    await services.principals.deactivate("clerk-1", actor=SYSTEM_ACTOR)
    r = await async_client.get("/authz/principals/clerk-1/permissions", headers=root_headers)
    assert r.status_code == 200
    data = r.json()
    assert data["is_active"] is False
    assert data["permissions"] == {}
    assert data["all_access"] is False


@pytest.mark.asyncio
async def test_guarded_route_denies_without_permission(async_client: AsyncClient, clerk_headers, services):
    r = await async_client.get("/authz/principals/root/permissions", headers=clerk_headers)
    assert r.status_code == 403
    assert r.json()["detail"] == "permission denied: roles.view"
    denied = await services.audit_chain.query(AuditQuery(action=AuditAction.ACCESS_DENIED))
    assert denied[0].actor_id == "clerk-1"
    assert denied[0].entity_id == "roles.view"


@pytest.mark.asyncio
async def test_check(async_client: AsyncClient, clerk_headers):
    r = await async_client.post(
        "/authz/check", json={"principal_id": "clerk-1", "module": "orders", "verb": "edit"}, headers=clerk_headers
    )
    assert r.status_code == 200
    assert r.json() == {"allowed": True, "reason": "granted orders.update", "requirement": "orders.update"}

    r = await async_client.post(
        "/authz/check", json={"principal_id": "clerk-1", "module": "orders", "verb": "delete"}, headers=clerk_headers
    )
    assert r.json()["allowed"] is False
    assert r.json()["reason"] == "permission denied: orders.delete"


@pytest.mark.asyncio
async def test_check_unknown_verb_is_422(async_client: AsyncClient, clerk_headers):
    r = await async_client.post(
        "/authz/check", json={"principal_id": "clerk-1", "module": "orders", "verb": "approve"}, headers=clerk_headers
    )
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_check_any_and_all(async_client: AsyncClient, clerk_headers):
    body = {"principal_id": "clerk-1", "requirements": ["staff.view", "orders.view"]}
    assert (await async_client.post("/authz/check-any", json=body, headers=clerk_headers)).json()["allowed"] is True
    r = await async_client.post("/authz/check-all", json=body, headers=clerk_headers)
    assert r.json()["allowed"] is False
    assert r.json()["requirement"] == "staff.view"


@pytest.mark.asyncio
async def test_empty_requirements_rejected(async_client: AsyncClient, clerk_headers):
    r = await async_client.post(
        "/authz/check-any", json={"principal_id": "clerk-1", "requirements": []}, headers=clerk_headers
    )
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_inactive_caller_is_locked_out(async_client: AsyncClient, clerk_headers, services):
    await services.principals.deactivate("clerk-1", actor=SYSTEM_ACTOR)
    r = await async_client.post(
        "/authz/check", json={"principal_id": "clerk-1", "module": "orders", "verb": "view"}, headers=clerk_headers
    )
    assert r.status_code == 403
    assert r.json()["detail"] == "account inactive"


@pytest.mark.asyncio
async def test_check_reports_inactive_target(async_client: AsyncClient, root_headers, clerk, services):
    await services.principals.deactivate("clerk-1", actor=SYSTEM_ACTOR)
    r = await async_client.post(
        "/authz/check", json={"principal_id": "clerk-1", "module": "orders", "verb": "view"}, headers=root_headers
    )
    assert r.json() == {"allowed": False, "reason": "account inactive", "requirement": "orders.view"}


@pytest.mark.asyncio
async def test_check_unknown_target_is_404(async_client: AsyncClient, root_headers):
    r = await async_client.post(
        "/authz/check", json={"principal_id": "nobody", "module": "orders", "verb": "view"}, headers=root_headers
    )
    assert r.status_code == 404
