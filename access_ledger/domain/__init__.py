"""Domain layer: permission codes, roles, principals, module catalogue. Pure business logic only."""

from access_ledger.domain.exceptions import (
    ConfigurationError,
    DomainError,
    DomainValidationError,
    InvalidRoleTransitionError,
    UnknownVerbError,
)
from access_ledger.domain.models import (
    PermissionCode,
    Principal,
    RoleDefinition,
    RoleStatus,
    Verb,
    decode_permission,
    encode_permissions,
)

__all__ = [
    "ConfigurationError",
    "DomainError",
    "DomainValidationError",
    "InvalidRoleTransitionError",
    "PermissionCode",
    "Principal",
    "RoleDefinition",
    "RoleStatus",
    "UnknownVerbError",
    "Verb",
    "decode_permission",
    "encode_permissions",
]
