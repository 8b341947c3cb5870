"""Authorization gate: allow/deny decisions with audit. Request-scoped; no FastAPI."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from access_ledger.core.context import correlation_id_ctx, tenant_id_ctx
from access_ledger.domain.catalog import SUPER_ADMIN_SLUG
from access_ledger.domain.exceptions import DomainValidationError
from access_ledger.domain.models.permission import WRITE_VERBS, Verb
from access_ledger.domain.models.principal import Principal
from access_ledger.domain.models.role import RoleDefinition
from access_ledger.governance.audit_chain import AuditChain
from access_ledger.governance.audit_models import AuditAction, AuditEntry, Outcome, Severity
from access_ledger.scalability.circuit_breaker import CircuitBreaker
from access_ledger.scalability.sampling import ReadAuditSampler
from access_ledger.security.exceptions import AuthorizationDenied, PermissionStoreUnavailableError
from access_ledger.security.permission_resolver import EffectivePermissionMap, PermissionResolver

logger = logging.getLogger(__name__)

REASON_INACTIVE = "account inactive"
REASON_SUPER = "super role bypass"
REASON_STORE_UNAVAILABLE = "permission store unavailable"

READ_AUDIT_POLICIES = ("none", "sampled", "all")


@dataclass(frozen=True)
class Requirement:
    module: str
    verb: Verb

    @classmethod
    def parse(cls, value: Union["Requirement", str, Tuple[str, str]]) -> "Requirement":
        """Accept a Requirement, "module.verb" or (module, verb). Raises DomainValidationError."""
        if isinstance(value, Requirement):
            return value
        if isinstance(value, str):
            module, sep, verb = value.rpartition(".")
            if not sep or not module:
                raise DomainValidationError(f"Requirement must look like 'module.verb', got '{value}'")
            return cls(module=module, verb=Verb.parse(verb))
        module, verb = value
        return cls(module=module, verb=Verb.parse(verb))

    def __str__(self) -> str:
        return f"{self.module}.{self.verb.value}"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str
    module: Optional[str] = None
    verb: Optional[Verb] = None

    @property
    def requirement(self) -> Optional[str]:
        if self.module is None or self.verb is None:
            return None
        return f"{self.module}.{self.verb.value}"

    def raise_if_denied(self) -> "Decision":
        if not self.allowed:
            raise AuthorizationDenied(
                self.reason,
                module=self.module,
                verb=self.verb.value if self.verb else None,
            )
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {"allowed": self.allowed, "reason": self.reason, "requirement": self.requirement}


class AuthorizationGate:
    """
    One instance per request. Resolved permission maps are cached per principal for
    the lifetime of the gate; role-store reads are bounded by a timeout and a
    circuit breaker, and any store failure denies.

    Every DENY and every write-verb ALLOW is appended to the audit chain. Read ALLOWs
    follow ``read_allow_audit``: none, sampled (via the injected sampler) or all.
    """

    def __init__(
        self,
        *,
        role_repository: Any,
        audit_chain: AuditChain,
        resolver: Optional[PermissionResolver] = None,
        super_role_slugs: Iterable[str] = (SUPER_ADMIN_SLUG,),
        store_timeout_seconds: float = 2.0,
        circuit_breaker: Optional[CircuitBreaker] = None,
        read_allow_audit: str = "sampled",
        sampler: Optional[ReadAuditSampler] = None,
        metrics: Any = None,
    ) -> None:
        if read_allow_audit not in READ_AUDIT_POLICIES:
            raise DomainValidationError(f"Unknown read audit policy '{read_allow_audit}'")
        if read_allow_audit == "sampled" and sampler is None:
            raise DomainValidationError("read_allow_audit='sampled' requires a sampler")
        self._roles = role_repository
        self._audit = audit_chain
        self._resolver = resolver or PermissionResolver()
        self._super_slugs = frozenset(super_role_slugs)
        self._timeout = store_timeout_seconds
        self._breaker = circuit_breaker
        self._read_policy = read_allow_audit
        self._sampler = sampler
        self._metrics = metrics
        self._cache: Dict[str, EffectivePermissionMap] = {}

    def is_super(self, principal: Principal) -> bool:
        return any(slug in self._super_slugs for slug in principal.role_slugs)

    async def resolve(self, principal: Principal) -> EffectivePermissionMap:
        """Effective permissions for ``principal``. Raises PermissionStoreUnavailableError."""
        if not principal.is_active:
            return EffectivePermissionMap()
        cached = self._cache.get(principal.principal_id)
        if cached is not None:
            return cached
        if self.is_super(principal):
            resolved = self._resolver.resolve_principal(principal, (), is_super=True)
        else:
            roles = await self._load_roles(principal.role_slugs) if principal.role_slugs else []
            resolved = self._resolver.resolve_principal(principal, roles)
        self._cache[principal.principal_id] = resolved
        return resolved

    def invalidate(self, principal_id: Optional[str] = None) -> None:
        if principal_id is None:
            self._cache.clear()
        else:
            self._cache.pop(principal_id, None)

    async def check(self, principal: Principal, module: str, verb: Union[Verb, str]) -> Decision:
        requirement = Requirement(module=module, verb=Verb.parse(verb))
        decision = await self._evaluate(principal, requirement)
        await self._record(principal, decision, [requirement], mode="single")
        return decision

    async def check_any(
        self, principal: Principal, requirements: Sequence[Union[Requirement, str]]
    ) -> Decision:
        """ALLOW on the first requirement that passes."""
        parsed = self._parse_all(requirements)
        decision: Optional[Decision] = None
        for requirement in parsed:
            decision = await self._evaluate(principal, requirement)
            if decision.allowed:
                break
        if not decision.allowed and decision.reason not in (REASON_INACTIVE, REASON_STORE_UNAVAILABLE):
            names = ", ".join(str(r) for r in parsed)
            decision = Decision(
                allowed=False,
                reason=f"permission denied: requires any of {names}",
                module=decision.module,
                verb=decision.verb,
            )
        await self._record(principal, decision, parsed, mode="any")
        return decision

    async def check_all(
        self, principal: Principal, requirements: Sequence[Union[Requirement, str]]
    ) -> Decision:
        """ALLOW only if every requirement passes; the first failure is the reason."""
        parsed = self._parse_all(requirements)
        decision: Optional[Decision] = None
        for requirement in parsed:
            decision = await self._evaluate(principal, requirement)
            if not decision.allowed:
                break
        await self._record(principal, decision, parsed, mode="all")
        return decision

    async def require(self, principal: Principal, module: str, verb: Union[Verb, str]) -> Decision:
        """check() then raise AuthorizationDenied on DENY."""
        return (await self.check(principal, module, verb)).raise_if_denied()

    # ------------------------------------------------------------------

    @staticmethod
    def _parse_all(requirements: Sequence[Union[Requirement, str]]) -> List[Requirement]:
        if not requirements:
            raise DomainValidationError("At least one requirement is needed")
        return [Requirement.parse(r) for r in requirements]

    async def _evaluate(self, principal: Principal, requirement: Requirement) -> Decision:
        """Decision for one requirement. No audit."""
        module, verb = requirement.module, requirement.verb
        if not principal.is_active:
            return Decision(False, REASON_INACTIVE, module, verb)
        if self.is_super(principal):
            return Decision(True, REASON_SUPER, module, verb)
        try:
            resolved = await self.resolve(principal)
        except PermissionStoreUnavailableError:
            return Decision(False, REASON_STORE_UNAVAILABLE, module, verb)
        if resolved.allows(module, verb):
            return Decision(True, f"granted {requirement}", module, verb)
        return Decision(False, f"permission denied: {requirement}", module, verb)

    async def _load_roles(self, slugs: Sequence[str]) -> List[RoleDefinition]:
        try:
            if self._breaker is not None:
                roles = await self._breaker.call(self._fetch_roles, list(slugs))
            else:
                roles = await self._fetch_roles(list(slugs))
        except Exception as exc:
            logger.error(
                "permission_store_unavailable",
                extra={"error": repr(exc), "timeout_seconds": self._timeout},
            )
            if self._metrics is not None:
                self._metrics.increment("permission_store_failures", 1)
            raise PermissionStoreUnavailableError(REASON_STORE_UNAVAILABLE) from exc
        return [role for role in roles if role.is_active]

    async def _fetch_roles(self, slugs: List[str]) -> List[RoleDefinition]:
        return await asyncio.wait_for(self._roles.get_many(slugs), self._timeout)

    async def _should_audit(
        self, principal: Principal, decision: Decision, requirements: List[Requirement], mode: str
    ) -> bool:
        if not decision.allowed:
            return True
        # An ALLOW under check_all granted every requirement; otherwise only the deciding one.
        granted = [r.verb for r in requirements] if mode == "all" else [decision.verb]
        if any(verb in WRITE_VERBS for verb in granted):
            return True
        if self._read_policy == "all":
            return True
        if self._read_policy == "none":
            return False
        return await self._sampler.should_audit(
            principal.principal_id, decision.module or "", decision.verb.value if decision.verb else ""
        )

    async def _record(
        self,
        principal: Principal,
        decision: Decision,
        requirements: List[Requirement],
        *,
        mode: str,
    ) -> None:
        outcome = "allow" if decision.allowed else "deny"
        if self._metrics is not None:
            self._metrics.increment("authz_decisions", 1, category=decision.module, outcome=outcome)
        if not decision.allowed:
            logger.warning(
                "authorization_denied",
                extra={
                    "principal_id": principal.principal_id,
                    "requirement": decision.requirement,
                    "reason": decision.reason,
                    "mode": mode,
                },
            )
        if not await self._should_audit(principal, decision, requirements, mode):
            return
        await self._audit.append(
            AuditEntry(
                actor_id=principal.principal_id,
                actor_role=principal.role_label,
                action=AuditAction.ACCESS_GRANTED if decision.allowed else AuditAction.ACCESS_DENIED,
                entity_type="permission",
                entity_id=decision.requirement,
                tenant_id=principal.tenant_id or tenant_id_ctx.get(),
                outcome=Outcome.SUCCESS if decision.allowed else Outcome.FAILURE,
                severity=Severity.LOW if decision.allowed else Severity.MEDIUM,
                details={
                    "reason": decision.reason,
                    "mode": mode,
                    "requirements": [str(r) for r in requirements],
                    "correlation_id": correlation_id_ctx.get(),
                },
            )
        )
