"""Security: permission resolution and the authorization gate. No FastAPI."""

from access_ledger.security.authorization_gate import AuthorizationGate, Decision, Requirement
from access_ledger.security.exceptions import (
    AuthorizationDenied,
    PermissionStoreUnavailableError,
    SecurityError,
)
from access_ledger.security.permission_resolver import (
    EffectivePermissionMap,
    PermissionIssue,
    PermissionResolver,
)

__all__ = [
    "AuthorizationDenied",
    "AuthorizationGate",
    "Decision",
    "EffectivePermissionMap",
    "PermissionIssue",
    "PermissionResolver",
    "PermissionStoreUnavailableError",
    "Requirement",
    "SecurityError",
]
