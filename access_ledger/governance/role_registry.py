"""Role lifecycle: create, edit, activate/deactivate, delete. Every mutation audited. No FastAPI."""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from access_ledger.application.exceptions import StaleRoleVersionError
from access_ledger.application.notifier import RoleChangeEvent, RoleChangeNotifier
from access_ledger.application.principal_repository import PrincipalRepository
from access_ledger.application.role_repository import RoleRepository
from access_ledger.domain.catalog import SYSTEM_ROLES
from access_ledger.domain.models.principal import Principal
from access_ledger.domain.models.role import RoleDefinition, RoleStatus, decode_permissions
from access_ledger.governance.audit_chain import AuditChain
from access_ledger.governance.audit_models import AuditAction, AuditEntry, Severity
from access_ledger.governance.exceptions import (
    AuditWriteFailure,
    DuplicateRoleError,
    RoleInUseError,
    RoleNotFoundError,
    SystemRoleImmutableError,
)

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = Principal(principal_id="system", display_role="system")


class RoleRegistry:
    """
    draft -> active <-> inactive.
    System roles only toggle active/inactive. Custom roles change permissions only
    while unassigned; once principals reference a role, per-principal overrides are
    the way to adjust access. Writes compare-and-swap on ``version``.
    A change whose audit record cannot be written is undone before the error propagates.
    """

    def __init__(
        self,
        roles: RoleRepository,
        principals: PrincipalRepository,
        audit_chain: AuditChain,
        notifier: Optional[RoleChangeNotifier] = None,
    ) -> None:
        self._roles = roles
        self._principals = principals
        self._audit = audit_chain
        self._notifier = notifier

    async def get(self, slug: str) -> RoleDefinition:
        role = await self._roles.get(slug)
        if role is None:
            raise RoleNotFoundError(f"Role not found: {slug}")
        return role

    async def list(self, status: Optional[RoleStatus] = None) -> List[RoleDefinition]:
        return await self._roles.list(status)

    async def seed_system_roles(self, actor: Principal = SYSTEM_ACTOR) -> List[RoleDefinition]:
        """Create missing system roles as active defaults. Existing ones are left untouched."""
        created = []
        for template in SYSTEM_ROLES:
            if await self._roles.get(template["slug"]) is not None:
                continue
            role = RoleDefinition.build(
                name=template["name"],
                slug=template["slug"],
                description=template["description"],
                permissions=template["permissions"],
                is_default=True,
                status=RoleStatus.ACTIVE,
                created_by=actor.principal_id,
            )
            await self._roles.add(role)
            await self._record_or_undo(
                lambda: self._roles.remove(role.slug, role.version),
                actor,
                AuditAction.CREATE_ROLE,
                role,
                after=role.to_dict(),
                details={"seeded": True},
            )
            created.append(role)
        if created:
            logger.info("system_roles_seeded", extra={"slugs": [r.slug for r in created]})
        return created

    async def create(
        self,
        *,
        name: str,
        permissions: Mapping[str, Any],
        actor: Principal,
        description: str = "",
        slug: Optional[str] = None,
        activate: bool = False,
    ) -> RoleDefinition:
        """New custom role in draft (or active if ``activate``). Permissions may use any historic shape."""
        role = RoleDefinition.build(
            name=name,
            slug=slug,
            description=description,
            permissions=permissions,
            status=RoleStatus.ACTIVE if activate else RoleStatus.DRAFT,
            created_by=actor.principal_id,
        )
        if await self._roles.get(role.slug) is not None:
            raise DuplicateRoleError(f"Role already exists: {role.slug}")
        if await self._roles.get_by_name(role.name) is not None:
            raise DuplicateRoleError(f"Role name already in use: {role.name}")
        await self._roles.add(role)
        await self._record_or_undo(
            lambda: self._roles.remove(role.slug, role.version),
            actor,
            AuditAction.CREATE_ROLE,
            role,
            after=role.to_dict(),
        )
        await self._notify("role.created", role, actor)
        return role

    async def update(
        self,
        slug: str,
        *,
        actor: Principal,
        expected_version: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
        permissions: Optional[Mapping[str, Any]] = None,
    ) -> RoleDefinition:
        """Edit name / description / permissions. The slug never changes."""
        role = await self._get_versioned(slug, expected_version)
        if role.is_system:
            raise SystemRoleImmutableError(f"System role {slug} can only be activated or deactivated")
        changes: Dict[str, Any] = {}
        if name is not None and name.strip() != role.name:
            existing = await self._roles.get_by_name(name.strip())
            if existing is not None and existing.slug != slug:
                raise DuplicateRoleError(f"Role name already in use: {name.strip()}")
            changes["name"] = name.strip()
        if description is not None:
            changes["description"] = description
        if permissions is not None:
            assignments = await self._principals.count_with_role(slug)
            if assignments:
                raise RoleInUseError(
                    f"Role {slug} is assigned to {assignments} principal(s); "
                    "adjust access with per-principal overrides instead",
                    assignments=assignments,
                )
            changes["permissions"] = decode_permissions(permissions)
        if not changes:
            return role
        updated = role.edited(actor.principal_id, **changes)
        await self._roles.save(updated, expected_version)
        await self._record_or_undo(
            lambda: self._roles.save(role, updated.version),
            actor,
            AuditAction.UPDATE_ROLE,
            updated,
            before=role.to_dict(),
            after=updated.to_dict(),
        )
        await self._notify("role.updated", updated, actor)
        return updated

    async def activate(
        self, slug: str, *, actor: Principal, expected_version: Optional[int] = None
    ) -> RoleDefinition:
        return await self._transition(slug, RoleStatus.ACTIVE, actor, expected_version)

    async def deactivate(
        self, slug: str, *, actor: Principal, expected_version: Optional[int] = None
    ) -> RoleDefinition:
        return await self._transition(slug, RoleStatus.INACTIVE, actor, expected_version)

    async def delete(self, slug: str, *, actor: Principal, expected_version: Optional[int] = None) -> None:
        """Only unassigned custom roles can be deleted."""
        role = await self._get_versioned(slug, expected_version)
        if role.is_system:
            raise SystemRoleImmutableError(f"System role {slug} cannot be deleted")
        assignments = await self._principals.count_with_role(slug)
        if assignments:
            raise RoleInUseError(
                f"Role {slug} is assigned to {assignments} principal(s) and cannot be deleted",
                assignments=assignments,
            )
        await self._roles.remove(slug, role.version)
        await self._record_or_undo(
            lambda: self._roles.add(role),
            actor,
            AuditAction.DELETE_ROLE,
            role,
            before=role.to_dict(),
            severity=Severity.HIGH,
        )
        await self._notify("role.deleted", role, actor)

    async def _transition(
        self, slug: str, status: RoleStatus, actor: Principal, expected_version: Optional[int]
    ) -> RoleDefinition:
        role = await self._get_versioned(slug, expected_version)
        updated = role.transition_to(status, actor.principal_id)
        await self._roles.save(updated, role.version)
        activating = status == RoleStatus.ACTIVE
        await self._record_or_undo(
            lambda: self._roles.save(role, updated.version),
            actor,
            AuditAction.ACTIVATE_ROLE if activating else AuditAction.DEACTIVATE_ROLE,
            updated,
            before=role.to_dict(),
            after=updated.to_dict(),
            severity=Severity.LOW if activating else Severity.MEDIUM,
        )
        await self._notify("role.activated" if activating else "role.deactivated", updated, actor)
        return updated

    async def _get_versioned(self, slug: str, expected_version: Optional[int]) -> RoleDefinition:
        role = await self.get(slug)
        if expected_version is not None and role.version != expected_version:
            raise StaleRoleVersionError(
                f"Role {slug} is at version {role.version}, expected {expected_version}",
                expected_version=expected_version,
                actual_version=role.version,
            )
        return role

    async def _record_or_undo(
        self,
        undo: Callable[[], Awaitable[None]],
        actor: Principal,
        action: AuditAction,
        role: RoleDefinition,
        **kwargs: Any,
    ) -> None:
        try:
            await self._record(actor, action, role, **kwargs)
        except AuditWriteFailure:
            try:
                await undo()
            except Exception as exc:
                logger.error(
                    "role_change_undo_failed",
                    extra={"subject": role.slug, "audit_action": action.value, "error": repr(exc)},
                )
            else:
                logger.warning("role_change_undone", extra={"subject": role.slug, "audit_action": action.value})
            raise

    async def _record(
        self,
        actor: Principal,
        action: AuditAction,
        role: RoleDefinition,
        *,
        before: Optional[dict] = None,
        after: Optional[dict] = None,
        severity: Severity = Severity.MEDIUM,
        details: Optional[dict] = None,
    ) -> None:
        await self._audit.append(
            AuditEntry(
                actor_id=actor.principal_id,
                actor_role=actor.role_label,
                action=action,
                entity_type="role",
                entity_id=role.slug,
                tenant_id=actor.tenant_id,
                severity=severity,
                details={"version": role.version, **(details or {})},
                before=before,
                after=after,
            )
        )

    async def _notify(self, event_type: str, role: RoleDefinition, actor: Principal) -> None:
        if self._notifier is None:
            return
        event = RoleChangeEvent(
            event_type=event_type,
            subject=role.slug,
            actor_id=actor.principal_id,
            version=role.version,
            tenant_id=actor.tenant_id,
        )
        try:
            await self._notifier.notify(event)
        except Exception as exc:
            logger.warning(
                "role_change_notify_failed",
                extra={"event_type": event_type, "subject": role.slug, "error": str(exc)},
            )
