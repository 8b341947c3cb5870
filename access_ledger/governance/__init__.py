"""Governance: hash-chained audit ledger, role lifecycle, principal administration. No FastAPI."""

from access_ledger.governance.audit_chain import AuditChain
from access_ledger.governance.audit_models import (
    AuditAction,
    AuditEntry,
    AuditQuery,
    AuditRecord,
    BrokenLink,
    HashMismatch,
    IntegrityReport,
    Outcome,
    Severity,
)
from access_ledger.governance.audit_normalizer import normalize_audit_entry
from access_ledger.governance.integrity_sweep import IntegritySweeper
from access_ledger.governance.principal_registry import PrincipalRegistry
from access_ledger.governance.role_registry import RoleRegistry

__all__ = [
    "AuditAction",
    "AuditChain",
    "AuditEntry",
    "AuditQuery",
    "AuditRecord",
    "BrokenLink",
    "HashMismatch",
    "IntegrityReport",
    "IntegritySweeper",
    "Outcome",
    "PrincipalRegistry",
    "RoleRegistry",
    "Severity",
    "normalize_audit_entry",
]
