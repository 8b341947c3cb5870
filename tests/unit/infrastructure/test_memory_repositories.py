"""In-memory repositories honour the same contracts as the database ones."""

import pytest

from access_ledger.application.exceptions import StaleRoleVersionError
from access_ledger.domain.models.principal import Principal
from access_ledger.domain.models.role import RoleDefinition, RoleStatus
from access_ledger.governance.audit_models import AuditAction, AuditEntry, AuditRecord, AuditQuery
from access_ledger.governance.exceptions import DuplicateRoleError, RoleNotFoundError, SequenceConflictError


def _record(position, previous_hash=None):
    entry = AuditEntry(actor_id="a", action=AuditAction.LOGIN, entity_type="session")
    return AuditRecord.from_entry(entry, position=position, content_hash=f"h{position}", previous_hash=previous_hash)


@pytest.mark.asyncio
async def test_audit_insert_is_compare_and_swap(audit_repository):
    await audit_repository.insert(_record(1))
    with pytest.raises(SequenceConflictError) as exc_info:
        await audit_repository.insert(_record(1))
    assert exc_info.value.position == 1
    with pytest.raises(SequenceConflictError):
        await audit_repository.insert(_record(3))
    await audit_repository.insert(_record(2, "h1"))
    assert (await audit_repository.get_tail()).position == 2
    assert [r.position async for r in audit_repository.iter_in_order()] == [1, 2]
    assert await audit_repository.count(AuditQuery(action=AuditAction.LOGIN)) == 2


@pytest.mark.asyncio
async def test_role_save_checks_version(role_repository):
    role = RoleDefinition.build(name="Order Desk", permissions={"orders": "r"})
    await role_repository.add(role)
    with pytest.raises(DuplicateRoleError):
        await role_repository.add(role)

    active = role.transition_to(RoleStatus.ACTIVE)
    await role_repository.save(active, expected_version=role.version)
    with pytest.raises(StaleRoleVersionError):
        await role_repository.save(active.edited(description="late"), expected_version=role.version)
    with pytest.raises(StaleRoleVersionError):
        await role_repository.remove(role.slug, expected_version=role.version)
    await role_repository.remove(role.slug, expected_version=active.version)
    with pytest.raises(RoleNotFoundError):
        await role_repository.remove(role.slug, expected_version=active.version)


@pytest.mark.asyncio
async def test_role_lookup(role_repository):
    await role_repository.add(RoleDefinition.build(name="Order Desk", permissions={}, status=RoleStatus.ACTIVE))
    await role_repository.add(RoleDefinition.build(name="Auditor", permissions={}, is_default=True))
    assert (await role_repository.get_by_name(" order desk ")).slug == "order-desk"
    assert [r.slug for r in await role_repository.get_many(["auditor", "ghost", "order-desk"])] == [
        "auditor",
        "order-desk",
    ]
    assert [r.slug for r in await role_repository.list()] == ["auditor", "order-desk"]
    assert [r.slug for r in await role_repository.list(RoleStatus.ACTIVE)] == ["order-desk"]


@pytest.mark.asyncio
async def test_principal_role_queries(principal_repository):
    await principal_repository.save(Principal("b", role_slugs=("ops",)))
    await principal_repository.save(Principal("a", role_slugs=("ops", "sales")))
    await principal_repository.save(Principal("c"))
    assert await principal_repository.count_with_role("ops") == 2
    assert [p.principal_id for p in await principal_repository.list("ops")] == ["a", "b"]
    assert len(await principal_repository.list()) == 3


@pytest.mark.asyncio
async def test_principal_discard(principal_repository):
    await principal_repository.save(Principal("a"))
    await principal_repository.discard("a")
    await principal_repository.discard("missing")
    assert await principal_repository.get("a") is None
