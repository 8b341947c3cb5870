"""Fixtures for API unit tests: in-memory services, bootstrapped super admin, AsyncClient."""

import pytest
from httpx import ASGITransport, AsyncClient

from access_ledger.api.dependencies import build_services
from access_ledger.config.settings import AppSettings
from access_ledger.governance.role_registry import SYSTEM_ACTOR
from access_ledger.main import bootstrap, create_app


@pytest.fixture
def settings():
    """No database, Redis or broker: every backend in-memory."""
    return AppSettings(
        environment="test",
        database_url=None,
        redis_url=None,
        rabbitmq_url=None,
        bootstrap_principal_id="root",
        read_allow_audit="all",
        integrity_sweep_interval_seconds=0,
    )


@pytest.fixture
async def services(settings):
    # ASGITransport does not run the lifespan, so bootstrap explicitly.
    services = build_services(settings)
    await bootstrap(services)
    yield services
    await services.close()


@pytest.fixture
def app(settings, services):
    return create_app(settings, services)


@pytest.fixture
async def async_client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def root_headers():
    return {"X-Principal-ID": "root"}


@pytest.fixture
async def clerk(services):
    """Active principal holding orders 'rcu' via a custom role, and nothing on roles or audit_logs."""
    await services.roles.create(
        name="Order Desk", permissions={"orders": "rcu"}, actor=SYSTEM_ACTOR, activate=True
    )
    return await services.principals.register("clerk-1", actor=SYSTEM_ACTOR, role_slugs=["order-desk"])


@pytest.fixture
def clerk_headers(clerk):
    return {"X-Principal-ID": clerk.principal_id}
