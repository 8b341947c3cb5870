"""Role registry: lifecycle, system-role protection, in-use rules and versioned writes."""

from unittest.mock import AsyncMock

import pytest

from access_ledger.application.exceptions import StaleRoleVersionError
from access_ledger.domain.exceptions import ConfigurationError, InvalidRoleTransitionError
from access_ledger.domain.models.principal import Principal
from access_ledger.domain.models.role import RoleStatus
from access_ledger.governance.audit_models import AuditAction, AuditQuery, Severity
from access_ledger.governance.exceptions import (
    AuditWriteFailure,
    DuplicateRoleError,
    RoleInUseError,
    RoleNotFoundError,
    SystemRoleImmutableError,
)
from access_ledger.governance.principal_registry import PrincipalRegistry
from access_ledger.governance.role_registry import RoleRegistry


@pytest.fixture
def notifier():
    return AsyncMock()


@pytest.fixture
def registry(role_repository, principal_repository, audit_chain, notifier):
    return RoleRegistry(role_repository, principal_repository, audit_chain, notifier)


async def _actions(audit_chain):
    return [r.action for r in reversed(await audit_chain.query())]


@pytest.mark.asyncio
async def test_seed_system_roles_is_idempotent(registry, audit_chain):
    created = await registry.seed_system_roles()
    again = await registry.seed_system_roles()
    assert len(created) == 5
    assert again == []
    roles = await registry.list()
    assert all(r.is_default and r.is_active for r in roles)
    assert await audit_chain.count(AuditQuery(action=AuditAction.CREATE_ROLE)) == 5


@pytest.mark.asyncio
async def test_create_role_starts_in_draft_and_is_audited(registry, audit_chain, notifier, admin):
    role = await registry.create(name="Order Desk", permissions={"orders": ["read", "edit"]}, actor=admin)

    assert role.slug == "order-desk"
    assert role.status == RoleStatus.DRAFT
    assert role.compact_permissions() == {"orders": "ru"}
    (record,) = await audit_chain.query()
    assert record.action == AuditAction.CREATE_ROLE
    assert record.actor_id == admin.principal_id
    assert record.after["permissions"] == {"orders": "ru"}
    notifier.notify.assert_awaited_once()
    assert notifier.notify.await_args.args[0].event_type == "role.created"


@pytest.mark.asyncio
async def test_create_rejects_duplicates_and_bad_permissions(registry, admin):
    await registry.create(name="Order Desk", permissions={}, actor=admin)
    with pytest.raises(DuplicateRoleError):
        await registry.create(name="Order Desk", permissions={}, actor=admin)
    with pytest.raises(DuplicateRoleError):
        await registry.create(name="order desk", slug="desk-2", permissions={}, actor=admin)
    with pytest.raises(ConfigurationError):
        await registry.create(name="Broken", permissions={"orders": 7}, actor=admin)


@pytest.mark.asyncio
async def test_update_changes_permissions_and_bumps_version(registry, audit_chain, admin):
    role = await registry.create(name="Order Desk", permissions={"orders": "r"}, actor=admin)
    updated = await registry.update(
        role.slug, actor=admin, expected_version=role.version, permissions={"orders": {"view": True, "create": True}}
    )
    assert updated.version == role.version + 1
    assert updated.compact_permissions() == {"orders": "rc"}
    record = (await audit_chain.query())[0]
    assert record.action == AuditAction.UPDATE_ROLE
    assert record.before["permissions"] == {"orders": "r"}
    assert record.after["permissions"] == {"orders": "rc"}


@pytest.mark.asyncio
async def test_update_with_stale_version_is_rejected(registry, admin):
    role = await registry.create(name="Order Desk", permissions={"orders": "r"}, actor=admin)
    await registry.update(role.slug, actor=admin, expected_version=role.version, description="v2")
    with pytest.raises(StaleRoleVersionError) as exc_info:
        await registry.update(role.slug, actor=admin, expected_version=role.version, description="v3")
    assert exc_info.value.actual_version == role.version + 1


@pytest.mark.asyncio
async def test_system_roles_only_toggle(registry, admin):
    await registry.seed_system_roles()
    with pytest.raises(SystemRoleImmutableError):
        await registry.update("platform-sales", actor=admin, expected_version=1, name="Sales")
    with pytest.raises(SystemRoleImmutableError):
        await registry.delete("platform-sales", actor=admin)
    inactive = await registry.deactivate("platform-sales", actor=admin)
    assert inactive.status == RoleStatus.INACTIVE
    assert (await registry.activate("platform-sales", actor=admin)).is_active


@pytest.mark.asyncio
async def test_assigned_role_permissions_are_frozen(registry, principal_repository, admin):
    role = await registry.create(name="Order Desk", permissions={"orders": "r"}, actor=admin, activate=True)
    await principal_repository.save(Principal("p1", role_slugs=(role.slug,)))

    with pytest.raises(RoleInUseError) as exc_info:
        await registry.update(role.slug, actor=admin, expected_version=role.version, permissions={"orders": "rcude"})
    assert exc_info.value.assignments == 1
    renamed = await registry.update(role.slug, actor=admin, expected_version=role.version, name="Order Desk EU")
    assert renamed.name == "Order Desk EU"
    with pytest.raises(RoleInUseError):
        await registry.delete(role.slug, actor=admin)


@pytest.mark.asyncio
async def test_lifecycle_transitions_are_audited(registry, audit_chain, admin):
    role = await registry.create(name="Order Desk", permissions={}, actor=admin)
    with pytest.raises(InvalidRoleTransitionError):
        await registry.deactivate(role.slug, actor=admin)
    await registry.activate(role.slug, actor=admin)
    await registry.deactivate(role.slug, actor=admin)
    assert await _actions(audit_chain) == [
        AuditAction.CREATE_ROLE,
        AuditAction.ACTIVATE_ROLE,
        AuditAction.DEACTIVATE_ROLE,
    ]


@pytest.mark.asyncio
async def test_delete_unassigned_role(registry, audit_chain, admin):
    role = await registry.create(name="Temp", permissions={}, actor=admin)
    await registry.delete(role.slug, actor=admin, expected_version=role.version)
    with pytest.raises(RoleNotFoundError):
        await registry.get(role.slug)
    record = (await audit_chain.query())[0]
    assert record.action == AuditAction.DELETE_ROLE
    assert record.severity == Severity.HIGH


@pytest.mark.asyncio
async def test_notifier_failure_does_not_undo_change(role_repository, principal_repository, audit_chain, admin):
    notifier = AsyncMock()
    notifier.notify.side_effect = RuntimeError("broker down")
    registry = RoleRegistry(role_repository, principal_repository, audit_chain, notifier)
    role = await registry.create(name="Order Desk", permissions={}, actor=admin)
    assert await registry.get(role.slug) == role


@pytest.fixture
def offline_registry(role_repository, principal_repository, offline_audit_chain, notifier):
    return RoleRegistry(role_repository, principal_repository, offline_audit_chain, notifier)


@pytest.mark.asyncio
async def test_create_is_undone_when_audit_fails(offline_registry, role_repository, notifier, admin):
    with pytest.raises(AuditWriteFailure):
        await offline_registry.create(name="Ghost", permissions={"orders": "rcude"}, actor=admin, activate=True)
    assert await role_repository.get("ghost") is None
    notifier.notify.assert_not_awaited()


@pytest.mark.asyncio
async def test_update_is_undone_when_audit_fails(registry, offline_registry, role_repository, admin):
    role = await registry.create(name="Order Desk", permissions={"orders": "r"}, actor=admin)
    with pytest.raises(AuditWriteFailure):
        await offline_registry.update(
            role.slug, actor=admin, expected_version=role.version, permissions={"orders": "rcude"}
        )
    assert await role_repository.get(role.slug) == role


@pytest.mark.asyncio
async def test_transition_is_undone_when_audit_fails(registry, offline_registry, role_repository, admin):
    role = await registry.create(name="Order Desk", permissions={"orders": "r"}, actor=admin)
    with pytest.raises(AuditWriteFailure):
        await offline_registry.activate(role.slug, actor=admin)
    stored = await role_repository.get(role.slug)
    assert stored.status == RoleStatus.DRAFT
    assert stored.version == role.version


@pytest.mark.asyncio
async def test_delete_is_undone_when_audit_fails(registry, offline_registry, role_repository, admin):
    role = await registry.create(name="Temp", permissions={}, actor=admin)
    with pytest.raises(AuditWriteFailure):
        await offline_registry.delete(role.slug, actor=admin)
    assert await role_repository.get(role.slug) == role


@pytest.mark.asyncio
async def test_assignment_between_delete_check_and_remove_wins(
    registry, role_repository, principal_repository, audit_chain, admin
):
    role = await registry.create(name="Order Desk", permissions={"orders": "r"}, actor=admin, activate=True)
    principals = PrincipalRegistry(principal_repository, role_repository, audit_chain)
    count_with_role = principal_repository.count_with_role

    async def count_then_assign(slug):
        # The assignment lands after delete() has counted zero holders.
        count = await count_with_role(slug)
        await principals.register("p1", actor=admin, role_slugs=[slug])
        return count

    principal_repository.count_with_role = count_then_assign
    with pytest.raises(StaleRoleVersionError):
        await registry.delete(role.slug, actor=admin)
    assert await role_repository.get(role.slug) is not None
    assert (await principal_repository.get("p1")).role_slugs == (role.slug,)


@pytest.mark.asyncio
async def test_assignment_between_edit_check_and_save_wins(
    registry, role_repository, principal_repository, audit_chain, admin
):
    role = await registry.create(name="Order Desk", permissions={"orders": "r"}, actor=admin, activate=True)
    principals = PrincipalRegistry(principal_repository, role_repository, audit_chain)
    await principals.register("p1", actor=admin)
    count_with_role = principal_repository.count_with_role

    async def count_then_assign(slug):
        count = await count_with_role(slug)
        await principals.assign_role("p1", slug, actor=admin)
        return count

    principal_repository.count_with_role = count_then_assign
    with pytest.raises(StaleRoleVersionError):
        await registry.update(role.slug, actor=admin, expected_version=role.version, permissions={"orders": "rcude"})
    assert (await role_repository.get(role.slug)).compact_permissions() == {"orders": "r"}
