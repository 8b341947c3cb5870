# access_ledger/main.py

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from access_ledger.api.dependencies import Services, build_services
from access_ledger.api.middleware import (
    AccessLogMiddleware,
    CorrelationIdMiddleware,
    TenantContextMiddleware,
)
from access_ledger.api.routers import audit, authz, health, principals, roles
from access_ledger.application.exceptions import ApplicationError, StaleRoleVersionError
from access_ledger.config.logging import configure_logging
from access_ledger.config.settings import AppSettings, get_settings
from access_ledger.domain.exceptions import DomainError, InvalidRoleTransitionError
from access_ledger.governance.exceptions import (
    AuditImmutableError,
    AuditWriteFailure,
    DuplicateRoleError,
    GovernanceError,
    PrincipalNotFoundError,
    RoleInUseError,
    RoleNotFoundError,
    SystemRoleImmutableError,
)
from access_ledger.governance.role_registry import SYSTEM_ACTOR
from access_ledger.security.exceptions import AuthorizationDenied, PermissionStoreUnavailableError, SecurityError

logger = logging.getLogger(__name__)


async def bootstrap(services: Services) -> None:
    """Seed system roles and the optional bootstrap administrator."""
    settings = services.settings
    if settings.database_url:
        from access_ledger.infrastructure.database.session import init_models

        await init_models()
    await services.roles.seed_system_roles()
    principal_id = settings.bootstrap_principal_id
    if principal_id and await services.principal_repository.get(principal_id) is None:
        await services.principals.register(
            principal_id,
            actor=SYSTEM_ACTOR,
            role_slugs=settings.super_role_slugs[:1],
            display_role="bootstrap",
        )
        logger.info("bootstrap_principal_registered", extra={"principal_id": principal_id})
    if settings.integrity_sweep_interval_seconds > 0:
        services.sweeper.start()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": message})


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainError)
    async def domain_error_handler(request, exc: DomainError):
        return _error(422, exc.message)

    @app.exception_handler(InvalidRoleTransitionError)
    async def role_transition_error_handler(request, exc: InvalidRoleTransitionError):
        return _error(409, exc.message)

    @app.exception_handler(RoleNotFoundError)
    async def role_not_found_handler(request, exc: RoleNotFoundError):
        return _error(404, exc.message)

    @app.exception_handler(PrincipalNotFoundError)
    async def principal_not_found_handler(request, exc: PrincipalNotFoundError):
        return _error(404, exc.message)

    for conflict in (DuplicateRoleError, RoleInUseError, SystemRoleImmutableError, StaleRoleVersionError):

        @app.exception_handler(conflict)
        async def conflict_handler(request, exc):
            return _error(409, exc.message)

    @app.exception_handler(AuditImmutableError)
    async def audit_immutable_handler(request, exc: AuditImmutableError):
        return _error(405, exc.message)

    @app.exception_handler(AuditWriteFailure)
    async def audit_write_failure_handler(request, exc: AuditWriteFailure):
        return _error(503, exc.message)

    @app.exception_handler(GovernanceError)
    async def governance_error_handler(request, exc: GovernanceError):
        return _error(400, exc.message)

    @app.exception_handler(AuthorizationDenied)
    async def authorization_denied_handler(request, exc: AuthorizationDenied):
        return _error(403, exc.message)

    @app.exception_handler(PermissionStoreUnavailableError)
    async def permission_store_handler(request, exc: PermissionStoreUnavailableError):
        return _error(503, exc.message)

    @app.exception_handler(SecurityError)
    async def security_error_handler(request, exc: SecurityError):
        return _error(403, exc.message)

    @app.exception_handler(ApplicationError)
    async def application_error_handler(request, exc: ApplicationError):
        return _error(500, exc.message)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request, exc: Exception):
        logger.exception("unhandled_error")
        return _error(500, "Internal server error")


def create_app(settings: Optional[AppSettings] = None, services: Optional[Services] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    services = services or build_services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await bootstrap(services)
        yield
        await services.close()
        if settings.database_url:
            from access_ledger.infrastructure.database.session import dispose_engine

            await dispose_engine()

    app = FastAPI(
        title=settings.app_name,
        version=settings.version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.services = services

    # Middleware order: last added runs first (outermost). Request flow: CorrelationId -> TenantContext -> AccessLog.
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(TenantContextMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    register_exception_handlers(app)

    # Routers: /health, /authz, /roles, /principals, /audit
    app.include_router(health.router)
    app.include_router(authz.router, prefix="/authz")
    app.include_router(roles.router, prefix="/roles")
    app.include_router(principals.router, prefix="/principals")
    app.include_router(audit.router, prefix="/audit")
    return app


app = create_app()
