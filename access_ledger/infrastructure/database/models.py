# access_ledger/infrastructure/database/models.py

from sqlalchemy import BigInteger, Boolean, Column, DateTime, Integer, String, Text, event
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.sql import func

from access_ledger.governance.exceptions import AuditImmutableError
from access_ledger.infrastructure.database.session import Base


class RoleRow(Base):
    __tablename__ = "roles"

    slug = Column(String(100), primary_key=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=False, default="")
    status = Column(String(16), nullable=False, default="draft")
    is_default = Column(Boolean, nullable=False, default=False)
    # module -> compact code ("rcude")
    permissions = Column(JSONB, nullable=False, default=dict)
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(String, nullable=True)
    updated_by = Column(String, nullable=True)


class PrincipalRow(Base):
    __tablename__ = "principals"

    principal_id = Column(String, primary_key=True)
    role_slugs = Column(ARRAY(String), nullable=False, default=list)
    overrides = Column(JSONB, nullable=False, default=dict)
    legacy_permissions = Column(JSONB, nullable=False, default=dict)
    is_active = Column(Boolean, nullable=False, default=True)
    tenant_id = Column(String, nullable=True, index=True)
    display_role = Column(String, nullable=True)


class AuditRecordRow(Base):
    """Append-only. ``position`` is the primary key, so a second insert at the same position fails."""

    __tablename__ = "audit_records"

    position = Column(BigInteger, primary_key=True, autoincrement=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)
    actor_id = Column(String, nullable=False, index=True)
    actor_role = Column(String, nullable=True)
    action = Column(String(32), nullable=False, index=True)
    entity_type = Column(String(64), nullable=False)
    entity_id = Column(String, nullable=True)
    tenant_id = Column(String, nullable=True, index=True)
    outcome = Column(String(16), nullable=False)
    severity = Column(String(16), nullable=False, index=True)
    details = Column(JSONB, nullable=False, default=dict)
    before = Column(JSONB, nullable=True)
    after = Column(JSONB, nullable=True)
    hash = Column(String(64), nullable=False)
    previous_hash = Column(String(64), nullable=True)


@event.listens_for(AuditRecordRow, "before_update")
def _reject_audit_update(mapper, connection, target) -> None:
    raise AuditImmutableError(f"Audit record {target.position} cannot be updated")


@event.listens_for(AuditRecordRow, "before_delete")
def _reject_audit_delete(mapper, connection, target) -> None:
    raise AuditImmutableError(f"Audit record {target.position} cannot be deleted")
