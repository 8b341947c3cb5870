"""Immutable audit record model and hash-chain primitives. Domain-level immutability."""

import hashlib
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class AuditAction(str, Enum):
    """Closed action vocabulary. OTHER is the catch-all for unmapped legacy actions."""

    ACCESS_GRANTED = "ACCESS_GRANTED"
    ACCESS_DENIED = "ACCESS_DENIED"
    CREATE_ROLE = "CREATE_ROLE"
    UPDATE_ROLE = "UPDATE_ROLE"
    DELETE_ROLE = "DELETE_ROLE"
    ACTIVATE_ROLE = "ACTIVATE_ROLE"
    DEACTIVATE_ROLE = "DEACTIVATE_ROLE"
    ASSIGN_ROLE = "ASSIGN_ROLE"
    REVOKE_ROLE = "REVOKE_ROLE"
    UPDATE_OVERRIDE = "UPDATE_OVERRIDE"
    DEACTIVATE_PRINCIPAL = "DEACTIVATE_PRINCIPAL"
    REACTIVATE_PRINCIPAL = "REACTIVATE_PRINCIPAL"
    LOGIN = "LOGIN"
    LOGIN_FAILED = "LOGIN_FAILED"
    LOGOUT = "LOGOUT"
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    EXPORT = "EXPORT"
    OTHER = "OTHER"


class Outcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    WARNING = "warning"
    PENDING = "pending"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class AuditEntry:
    """
    Canonical, not-yet-chained audit entry: who, what, on which entity, when (UTC), outcome.
    details / before / after must be JSON-compatible (the normalizer guarantees it).
    """

    actor_id: str
    action: AuditAction
    entity_type: str
    entity_id: Optional[str] = None
    actor_role: Optional[str] = None
    tenant_id: Optional[str] = None
    outcome: Outcome = Outcome.SUCCESS
    severity: Severity = Severity.LOW
    details: Dict[str, Any] = field(default_factory=dict)
    before: Optional[Dict[str, Any]] = None
    after: Optional[Dict[str, Any]] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class AuditRecord:
    """
    Stored, hash-linked audit record. Created once by AuditChain.append; never mutated.
    previous_hash of position N equals hash of position N-1 (None for position 1).
    """

    position: int
    timestamp: datetime
    actor_id: str
    actor_role: Optional[str]
    action: AuditAction
    entity_type: str
    entity_id: Optional[str]
    tenant_id: Optional[str]
    outcome: Outcome
    severity: Severity
    details: Dict[str, Any]
    before: Optional[Dict[str, Any]]
    after: Optional[Dict[str, Any]]
    hash: str
    previous_hash: Optional[str]

    @classmethod
    def from_entry(
        cls,
        entry: AuditEntry,
        *,
        position: int,
        content_hash: str,
        previous_hash: Optional[str],
    ) -> "AuditRecord":
        return cls(
            position=position,
            timestamp=entry.timestamp,
            actor_id=entry.actor_id,
            actor_role=entry.actor_role,
            action=entry.action,
            entity_type=entry.entity_type,
            entity_id=entry.entity_id,
            tenant_id=entry.tenant_id,
            outcome=entry.outcome,
            severity=entry.severity,
            details=entry.details,
            before=entry.before,
            after=entry.after,
            hash=content_hash,
            previous_hash=previous_hash,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Structured representation for JSON logging and API responses."""
        return {
            "position": self.position,
            "timestamp": self.timestamp.isoformat(),
            "actor_id": self.actor_id,
            "actor_role": self.actor_role,
            "action": self.action.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "tenant_id": self.tenant_id,
            "outcome": self.outcome.value,
            "severity": self.severity.value,
            "details": self.details,
            "before": self.before,
            "after": self.after,
            "hash": self.hash,
            "previous_hash": self.previous_hash,
        }


def _utc_iso(ts: datetime) -> str:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat()


def canonical_content(record: Any) -> str:
    """
    Canonical JSON of the immutable content fields of an AuditEntry or AuditRecord.
    position, hash and previous_hash are excluded.
    """
    content = {
        "timestamp": _utc_iso(record.timestamp),
        "actor_id": record.actor_id,
        "actor_role": record.actor_role,
        "action": AuditAction(record.action).value,
        "entity_type": record.entity_type,
        "entity_id": record.entity_id,
        "tenant_id": record.tenant_id,
        "outcome": Outcome(record.outcome).value,
        "severity": Severity(record.severity).value,
        "details": record.details,
        "before": record.before,
        "after": record.after,
    }
    return json.dumps(content, sort_keys=True, separators=(",", ":"), default=str)


def compute_content_hash(record: Any) -> str:
    """SHA-256 hex digest of canonical_content."""
    return hashlib.sha256(canonical_content(record).encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# Integrity report. Violations are data, not exceptions.
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BrokenLink:
    """previous_hash at ``position`` does not match the hash stored at position - 1."""

    position: int
    expected_previous_hash: Optional[str]
    actual_previous_hash: Optional[str]


@dataclass(frozen=True)
class HashMismatch:
    """Stored hash at ``position`` does not match the recomputed content hash."""

    position: int
    stored_hash: str
    computed_hash: str


@dataclass(frozen=True)
class IntegrityReport:
    total_records: int
    broken_links: Tuple[BrokenLink, ...] = ()
    hash_mismatches: Tuple[HashMismatch, ...] = ()
    verified_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_intact(self) -> bool:
        return not self.broken_links and not self.hash_mismatches


@dataclass(frozen=True)
class AuditQuery:
    """Filter for audit record listing. All fields optional; newest first."""

    actor_id: Optional[str] = None
    action: Optional[AuditAction] = None
    severity: Optional[Severity] = None
    outcome: Optional[Outcome] = None
    tenant_id: Optional[str] = None
    entity_type: Optional[str] = None
    since: Optional[datetime] = None
    until: Optional[datetime] = None
    suspicious: bool = False
    limit: int = 50
    offset: int = 0

    def matches(self, record: AuditRecord) -> bool:
        if self.actor_id is not None and record.actor_id != self.actor_id:
            return False
        if self.action is not None and record.action != self.action:
            return False
        if self.severity is not None and record.severity != self.severity:
            return False
        if self.outcome is not None and record.outcome != self.outcome:
            return False
        if self.tenant_id is not None and record.tenant_id != self.tenant_id:
            return False
        if self.entity_type is not None and record.entity_type != self.entity_type:
            return False
        if self.since is not None and record.timestamp < self.since:
            return False
        if self.until is not None and record.timestamp > self.until:
            return False
        if self.suspicious and not is_suspicious(record):
            return False
        return True


SUSPICIOUS_ACTIONS = frozenset({AuditAction.ACCESS_DENIED, AuditAction.LOGIN_FAILED})
SUSPICIOUS_SEVERITIES = frozenset({Severity.HIGH, Severity.CRITICAL})


def is_suspicious(record: AuditRecord) -> bool:
    """Denied access, failed login, any failure outcome, or high/critical severity."""
    return (
        record.action in SUSPICIOUS_ACTIONS
        or record.outcome == Outcome.FAILURE
        or record.severity in SUSPICIOUS_SEVERITIES
    )
