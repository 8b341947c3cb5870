"""Principal administration: role assignment, overrides, soft deactivation. Every change audited."""

import logging
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Sequence

from access_ledger.application.exceptions import StaleRoleVersionError
from access_ledger.application.notifier import RoleChangeEvent, RoleChangeNotifier
from access_ledger.application.principal_repository import PrincipalRepository
from access_ledger.application.role_repository import RoleRepository
from access_ledger.domain.catalog import SUPER_ADMIN_SLUG
from access_ledger.domain.exceptions import DomainValidationError
from access_ledger.domain.models.permission import decode_permission
from access_ledger.domain.models.principal import Principal
from access_ledger.domain.models.role import RoleDefinition
from access_ledger.governance.audit_chain import AuditChain
from access_ledger.governance.audit_models import AuditAction, AuditEntry, Severity
from access_ledger.governance.exceptions import AuditWriteFailure, PrincipalNotFoundError, RoleNotFoundError

logger = logging.getLogger(__name__)

CLAIM_ATTEMPTS = 3


class PrincipalRegistry:
    """
    Principals are never deleted; deactivate them instead.

    Each change is saved, then audited. If the audit record cannot be written the
    previous state is restored before the error propagates. Assigning a role claims
    it (bumps its version) after the principal is saved, so a concurrent role delete
    or permission edit either sees the assignment or loses its compare-and-swap.
    """

    def __init__(
        self,
        principals: PrincipalRepository,
        roles: RoleRepository,
        audit_chain: AuditChain,
        notifier: Optional[RoleChangeNotifier] = None,
        super_role_slugs: Sequence[str] = (SUPER_ADMIN_SLUG,),
    ) -> None:
        self._principals = principals
        self._roles = roles
        self._audit = audit_chain
        self._notifier = notifier
        self._super_slugs = frozenset(super_role_slugs)

    async def get(self, principal_id: str) -> Principal:
        principal = await self._principals.get(principal_id)
        if principal is None:
            raise PrincipalNotFoundError(f"Principal not found: {principal_id}")
        return principal

    async def list(self, role_slug: Optional[str] = None) -> List[Principal]:
        return await self._principals.list(role_slug)

    async def register(
        self,
        principal_id: str,
        *,
        actor: Principal,
        role_slugs: Sequence[str] = (),
        legacy_permissions: Optional[Mapping[str, Any]] = None,
        tenant_id: Optional[str] = None,
        display_role: Optional[str] = None,
    ) -> Principal:
        if await self._principals.get(principal_id) is not None:
            raise DomainValidationError(f"Principal already exists: {principal_id}")
        unique_slugs = tuple(dict.fromkeys(role_slugs))
        roles = [await self._assignable_role(slug) for slug in unique_slugs]
        for module, value in (legacy_permissions or {}).items():
            decode_permission(value, module)
        principal = Principal(
            principal_id=principal_id,
            role_slugs=unique_slugs,
            legacy_permissions=dict(legacy_permissions or {}),
            tenant_id=tenant_id,
            display_role=display_role,
        )
        await self._principals.save(principal)
        try:
            for role in roles:
                await self._claim(role)
            await self._record(actor, AuditAction.CREATE, principal, after=principal.to_dict())
        except (AuditWriteFailure, StaleRoleVersionError, RoleNotFoundError):
            await self._undo(lambda: self._principals.discard(principal_id), principal_id, AuditAction.CREATE)
            raise
        return principal

    async def assign_role(self, principal_id: str, slug: str, *, actor: Principal) -> Principal:
        principal = await self.get(principal_id)
        role = await self._assignable_role(slug)
        updated = principal.with_role(slug)
        if updated is principal:
            return principal
        await self._principals.save(updated)
        try:
            await self._claim(role)
            await self._record(
                actor,
                AuditAction.ASSIGN_ROLE,
                updated,
                before=principal.to_dict(),
                after=updated.to_dict(),
                severity=Severity.CRITICAL if slug in self._super_slugs else Severity.MEDIUM,
                details={"role": slug},
            )
        except (AuditWriteFailure, StaleRoleVersionError, RoleNotFoundError):
            await self._undo(lambda: self._principals.save(principal), principal_id, AuditAction.ASSIGN_ROLE)
            raise
        await self._notify("principal.role_assigned", updated, actor)
        return updated

    async def revoke_role(self, principal_id: str, slug: str, *, actor: Principal) -> Principal:
        principal = await self.get(principal_id)
        if slug not in principal.role_slugs:
            return principal
        updated = principal.without_role(slug)
        await self._principals.save(updated)
        await self._record_or_undo(
            principal,
            actor,
            AuditAction.REVOKE_ROLE,
            updated,
            before=principal.to_dict(),
            after=updated.to_dict(),
            details={"role": slug},
        )
        await self._notify("principal.role_revoked", updated, actor)
        return updated

    async def set_override(self, principal_id: str, module: str, value: Any, *, actor: Principal) -> Principal:
        """Set (or clear, with ``None``) one module override. Raises ConfigurationError if undecodable."""
        principal = await self.get(principal_id)
        if value is not None:
            decode_permission(value, module)
        updated = principal.with_override(module, value)
        await self._principals.save(updated)
        await self._record_or_undo(
            principal,
            actor,
            AuditAction.UPDATE_OVERRIDE,
            updated,
            before=principal.to_dict(),
            after=updated.to_dict(),
            severity=Severity.HIGH,
            details={"module": module, "cleared": value is None},
        )
        await self._notify("principal.override_updated", updated, actor)
        return updated

    async def deactivate(self, principal_id: str, *, actor: Principal) -> Principal:
        return await self._set_active(principal_id, False, actor)

    async def reactivate(self, principal_id: str, *, actor: Principal) -> Principal:
        return await self._set_active(principal_id, True, actor)

    async def _set_active(self, principal_id: str, is_active: bool, actor: Principal) -> Principal:
        principal = await self.get(principal_id)
        if principal.is_active == is_active:
            return principal
        updated = principal.with_active(is_active)
        await self._principals.save(updated)
        await self._record_or_undo(
            principal,
            actor,
            AuditAction.REACTIVATE_PRINCIPAL if is_active else AuditAction.DEACTIVATE_PRINCIPAL,
            updated,
            before=principal.to_dict(),
            after=updated.to_dict(),
            severity=Severity.MEDIUM if is_active else Severity.HIGH,
        )
        return updated

    async def _assignable_role(self, slug: str) -> RoleDefinition:
        role = await self._roles.get(slug)
        if role is None:
            raise RoleNotFoundError(f"Role not found: {slug}")
        if not role.is_active:
            raise DomainValidationError(f"Role {slug} is {role.status.value} and cannot be assigned")
        return role

    async def _claim(self, role: RoleDefinition) -> None:
        """Bump the role's version. Another claim is retried; a delete, deactivation or
        permission change since the role was checked is not."""
        for attempt in range(1, CLAIM_ATTEMPTS + 1):
            try:
                await self._roles.save(role.claimed(), role.version)
                return
            except StaleRoleVersionError:
                current = await self._roles.get(role.slug)
                if current is None:
                    raise RoleNotFoundError(f"Role not found: {role.slug}") from None
                unchanged = current.is_active and current.permissions == role.permissions
                if attempt == CLAIM_ATTEMPTS or not unchanged:
                    raise
                role = current

    async def _record_or_undo(
        self,
        previous: Principal,
        actor: Principal,
        action: AuditAction,
        principal: Principal,
        **kwargs: Any,
    ) -> None:
        try:
            await self._record(actor, action, principal, **kwargs)
        except AuditWriteFailure:
            await self._undo(lambda: self._principals.save(previous), principal.principal_id, action)
            raise

    async def _undo(self, undo: Callable[[], Awaitable[None]], principal_id: str, action: AuditAction) -> None:
        try:
            await undo()
        except Exception as exc:
            logger.error(
                "principal_change_undo_failed",
                extra={"principal_id": principal_id, "audit_action": action.value, "error": repr(exc)},
            )
        else:
            logger.warning(
                "principal_change_undone",
                extra={"principal_id": principal_id, "audit_action": action.value},
            )

    async def _record(
        self,
        actor: Principal,
        action: AuditAction,
        principal: Principal,
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
                entity_type="principal",
                entity_id=principal.principal_id,
                tenant_id=principal.tenant_id or actor.tenant_id,
                severity=severity,
                details=details or {},
                before=before,
                after=after,
            )
        )

    async def _notify(self, event_type: str, principal: Principal, actor: Principal) -> None:
        if self._notifier is None:
            return
        try:
            await self._notifier.notify(
                RoleChangeEvent(
                    event_type=event_type,
                    subject=principal.principal_id,
                    actor_id=actor.principal_id,
                    tenant_id=principal.tenant_id,
                )
            )
        except Exception as exc:
            logger.warning(
                "role_change_notify_failed",
                extra={"event_type": event_type, "subject": principal.principal_id, "error": str(exc)},
            )
