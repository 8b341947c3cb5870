"""Domain schemas. Request/response and validation."""

from access_ledger.domain.schemas.audit import (
    AuditEntryRequest,
    AuditListResponse,
    AuditRecordResponse,
    IntegrityReportResponse,
)
from access_ledger.domain.schemas.authz import (
    CheckRequest,
    CompositeCheckRequest,
    DecisionResponse,
    EffectivePermissionsResponse,
)
from access_ledger.domain.schemas.role import (
    OverrideRequest,
    PrincipalCreateRequest,
    PrincipalResponse,
    RoleCreateRequest,
    RoleResponse,
    RoleTransitionRequest,
    RoleUpdateRequest,
)

__all__ = [
    "AuditEntryRequest",
    "AuditListResponse",
    "AuditRecordResponse",
    "CheckRequest",
    "CompositeCheckRequest",
    "DecisionResponse",
    "EffectivePermissionsResponse",
    "IntegrityReportResponse",
    "OverrideRequest",
    "PrincipalCreateRequest",
    "PrincipalResponse",
    "RoleCreateRequest",
    "RoleResponse",
    "RoleTransitionRequest",
    "RoleUpdateRequest",
]
