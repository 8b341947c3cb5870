"""FastAPI dependency injection: app-scoped services, request-scoped gate, caller principal, guards."""

import logging
from dataclasses import dataclass
from typing import Annotated, Any, Callable, Optional

from fastapi import Depends, Header, HTTPException, Request

from access_ledger.application.notifier import LoggingRoleChangeNotifier, RoleChangeNotifier
from access_ledger.config.settings import AppSettings
from access_ledger.core.context import principal_id_ctx
from access_ledger.domain.models.permission import Verb
from access_ledger.domain.models.principal import Principal
from access_ledger.governance.audit_chain import AuditChain
from access_ledger.governance.integrity_sweep import IntegritySweeper
from access_ledger.governance.principal_registry import PrincipalRegistry
from access_ledger.governance.role_registry import RoleRegistry
from access_ledger.observability.metrics import MetricsCollector
from access_ledger.scalability.circuit_breaker import CircuitBreaker
from access_ledger.scalability.distributed_lock import DistributedLock, InMemoryLockBackend
from access_ledger.scalability.sampling import InMemoryWindowBackend, ReadAuditSampler
from access_ledger.security.authorization_gate import AuthorizationGate
from access_ledger.security.exceptions import AuthorizationDenied
from access_ledger.security.permission_resolver import PermissionResolver

logger = logging.getLogger(__name__)

PRINCIPAL_HEADER = "X-Principal-ID"


@dataclass
class Services:
    """Everything that lives for the whole process. The audit chain must be a single instance."""

    settings: AppSettings
    metrics: Optional[MetricsCollector]
    role_repository: Any
    principal_repository: Any
    audit_chain: AuditChain
    roles: RoleRegistry
    principals: PrincipalRegistry
    resolver: PermissionResolver
    circuit_breaker: CircuitBreaker
    sampler: ReadAuditSampler
    sweeper: IntegritySweeper
    notifier: RoleChangeNotifier
    redis_client: Any = None

    def new_gate(self) -> AuthorizationGate:
        return AuthorizationGate(
            role_repository=self.role_repository,
            audit_chain=self.audit_chain,
            resolver=self.resolver,
            super_role_slugs=self.settings.super_role_slugs,
            store_timeout_seconds=self.settings.permission_store_timeout_seconds,
            circuit_breaker=self.circuit_breaker,
            read_allow_audit=self.settings.read_allow_audit,
            sampler=self.sampler,
            metrics=self.metrics,
        )

    async def close(self) -> None:
        await self.sweeper.stop()
        if self.redis_client is not None:
            await self.redis_client.close()
        close = getattr(self.notifier, "close", None)
        if close is not None:
            await close()


def build_services(settings: AppSettings) -> Services:
    """Wire repositories and services from settings. In-memory backends for anything unconfigured."""
    metrics = MetricsCollector() if settings.enable_metrics else None

    if settings.database_url:
        from access_ledger.infrastructure.database.audit_repository_db import DbAuditRepository
        from access_ledger.infrastructure.database.principal_repository_db import DbPrincipalRepository
        from access_ledger.infrastructure.database.role_repository_db import DbRoleRepository
        from access_ledger.infrastructure.database.session import get_sessionmaker

        sessions = get_sessionmaker()
        role_repository = DbRoleRepository(sessions)
        principal_repository = DbPrincipalRepository(sessions)
        audit_repository = DbAuditRepository(sessions)
    else:
        from access_ledger.infrastructure.memory.audit_repository_memory import InMemoryAuditRepository
        from access_ledger.infrastructure.memory.principal_repository_memory import InMemoryPrincipalRepository
        from access_ledger.infrastructure.memory.role_repository_memory import InMemoryRoleRepository

        role_repository = InMemoryRoleRepository()
        principal_repository = InMemoryPrincipalRepository()
        audit_repository = InMemoryAuditRepository()

    redis_client = None
    if settings.redis_url:
        from access_ledger.infrastructure.cache.redis_client import RedisClient

        redis_client = RedisClient(settings.redis_url)
        lock_backend = redis_client
        window_backend = redis_client
    else:
        lock_backend = InMemoryLockBackend()
        window_backend = InMemoryWindowBackend()

    if settings.rabbitmq_url:
        from access_ledger.infrastructure.messaging.rabbitmq_publisher import RabbitMQRoleChangeNotifier

        notifier = RabbitMQRoleChangeNotifier(settings.rabbitmq_url)
    else:
        notifier = LoggingRoleChangeNotifier()

    audit_chain = AuditChain(
        audit_repository,
        max_retries=settings.audit_append_max_retries,
        timeout_seconds=settings.audit_append_timeout_seconds,
        metrics=metrics,
    )
    return Services(
        settings=settings,
        metrics=metrics,
        role_repository=role_repository,
        principal_repository=principal_repository,
        audit_chain=audit_chain,
        roles=RoleRegistry(role_repository, principal_repository, audit_chain, notifier),
        principals=PrincipalRegistry(
            principal_repository,
            role_repository,
            audit_chain,
            notifier,
            super_role_slugs=settings.super_role_slugs,
        ),
        resolver=PermissionResolver(legacy_enabled=settings.legacy_permissions_enabled),
        circuit_breaker=CircuitBreaker(
            failure_threshold=settings.permission_store_failure_threshold,
            recovery_timeout_seconds=settings.permission_store_recovery_seconds,
            name="permission_store",
            metrics_callback=metrics,
        ),
        sampler=ReadAuditSampler(
            window_backend,
            per_window=settings.read_allow_audit_per_window,
            window_seconds=settings.read_allow_audit_window_seconds,
            metrics_callback=metrics,
        ),
        sweeper=IntegritySweeper(
            audit_chain,
            DistributedLock(lock_backend),
            interval_seconds=settings.integrity_sweep_interval_seconds,
            lock_ttl=settings.integrity_sweep_lock_ttl,
            metrics=metrics,
        ),
        notifier=notifier,
        redis_client=redis_client,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_gate(services: Annotated[Services, Depends(get_services)]) -> AuthorizationGate:
    """One gate per request; its permission cache lives only as long as the request."""
    return services.new_gate()


async def get_caller(
    services: Annotated[Services, Depends(get_services)],
    x_principal_id: Annotated[Optional[str], Header(alias=PRINCIPAL_HEADER)] = None,
) -> Principal:
    """The authenticated principal making the request. Identity is established upstream."""
    if not x_principal_id or not x_principal_id.strip():
        raise HTTPException(status_code=401, detail=f"{PRINCIPAL_HEADER} header is required")
    principal = await services.principal_repository.get(x_principal_id.strip())
    if principal is None:
        logger.warning("unknown_principal", extra={"principal_id": x_principal_id.strip()})
        raise HTTPException(status_code=401, detail="Unknown principal")
    principal_id_ctx.set(principal.principal_id)
    return principal


async def get_active_caller(caller: Annotated[Principal, Depends(get_caller)]) -> Principal:
    if not caller.is_active:
        raise AuthorizationDenied("account inactive")
    return caller


def require_permission(module: str, verb: Verb) -> Callable:
    """Dependency factory: the caller must hold ``module.verb``. Returns the caller."""

    async def _guard(
        caller: Annotated[Principal, Depends(get_caller)],
        gate: Annotated[AuthorizationGate, Depends(get_gate)],
    ) -> Principal:
        (await gate.check(caller, module, verb)).raise_if_denied()
        return caller

    return _guard
