"""Shared fixtures: in-memory repositories, audit chain, metrics, principals."""

import pytest

from access_ledger.domain.models.principal import Principal
from access_ledger.governance.audit_chain import AuditChain
from access_ledger.infrastructure.memory.audit_repository_memory import InMemoryAuditRepository
from access_ledger.infrastructure.memory.principal_repository_memory import InMemoryPrincipalRepository
from access_ledger.infrastructure.memory.role_repository_memory import InMemoryRoleRepository
from access_ledger.observability.metrics import MetricsCollector


@pytest.fixture
def metrics():
    return MetricsCollector()


@pytest.fixture
def audit_repository():
    return InMemoryAuditRepository()


@pytest.fixture
def role_repository():
    return InMemoryRoleRepository()


@pytest.fixture
def principal_repository():
    return InMemoryPrincipalRepository()


@pytest.fixture
def audit_chain(audit_repository, metrics):
    return AuditChain(audit_repository, max_retries=3, timeout_seconds=1.0, metrics=metrics)


@pytest.fixture
def admin():
    return Principal(principal_id="admin-1", role_slugs=("super-admin",))


class OfflineAuditRepository(InMemoryAuditRepository):
    """Every insert fails, so every append ends in AuditWriteFailure."""

    async def insert(self, record):
        raise OSError("audit store offline")


@pytest.fixture
def offline_audit_chain():
    return AuditChain(OfflineAuditRepository(), max_retries=1, timeout_seconds=1.0)
