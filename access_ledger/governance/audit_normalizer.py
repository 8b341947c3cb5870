"""Normalize caller-supplied audit entries (current or legacy shape) to AuditEntry.

Never raises: an audit write must not be the reason a business operation fails.
Unmapped vocabulary values fall back to catch-alls and are logged.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from access_ledger.governance.audit_models import AuditAction, AuditEntry, Outcome, Severity

logger = logging.getLogger(__name__)

FALLBACK_ACTION = AuditAction.OTHER
FALLBACK_OUTCOME = Outcome.WARNING
FALLBACK_SEVERITY = Severity.MEDIUM
UNKNOWN_ACTOR = "system"
UNKNOWN_ENTITY = "unknown"

# Canonical field -> accepted input keys, in priority order.
_FIELD_ALIASES: Dict[str, tuple] = {
    "actor_id": ("actor_id", "actorId", "actor", "userId", "user_id"),
    "actor_role": ("actor_role", "actorRole", "userType", "user_type", "role"),
    "action": ("action",),
    "entity_type": ("entity_type", "entityType", "resourceType", "resource_type"),
    "entity_id": ("entity_id", "entityId", "resourceId", "resource_id"),
    "tenant_id": ("tenant_id", "tenantId", "tenancyId", "tenancy_id", "tenancy"),
    "outcome": ("outcome", "status"),
    "severity": ("severity", "riskLevel", "risk_level"),
    "details": ("details",),
    "before": ("before",),
    "after": ("after",),
    "timestamp": ("timestamp", "createdAt", "created_at"),
}

# Legacy keys folded into details instead of being dropped.
_DETAIL_KEYS: Dict[str, str] = {
    "metadata": "metadata",
    "description": "description",
    "errorMessage": "error_message",
    "ipAddress": "ip_address",
    "userAgent": "user_agent",
    "userEmail": "user_email",
    "sessionId": "session_id",
    "category": "category",
    "location": "location",
}

_LEGACY_ACTIONS: Dict[str, AuditAction] = {
    "login": AuditAction.LOGIN,
    "logout": AuditAction.LOGOUT,
    "failed_login": AuditAction.LOGIN_FAILED,
    "login_failed": AuditAction.LOGIN_FAILED,
    "create_superadmin_role": AuditAction.CREATE_ROLE,
    "update_superadmin_role": AuditAction.UPDATE_ROLE,
    "delete_superadmin_role": AuditAction.DELETE_ROLE,
    "assign_role": AuditAction.ASSIGN_ROLE,
    "assign_roles": AuditAction.ASSIGN_ROLE,
    "remove_role": AuditAction.REVOKE_ROLE,
    "unassign_role": AuditAction.REVOKE_ROLE,
    "update_permissions": AuditAction.UPDATE_OVERRIDE,
    "update_user_permissions": AuditAction.UPDATE_OVERRIDE,
    "permission_denied": AuditAction.ACCESS_DENIED,
    "access_denied": AuditAction.ACCESS_DENIED,
    "permission_granted": AuditAction.ACCESS_GRANTED,
    "access_granted": AuditAction.ACCESS_GRANTED,
    "deactivate_user": AuditAction.DEACTIVATE_PRINCIPAL,
    "activate_user": AuditAction.REACTIVATE_PRINCIPAL,
}

# Coarse legacy verbs: create_order, update_branch, delete_coupon, export_report ...
_LEGACY_ACTION_PREFIXES = (
    ("create_", AuditAction.CREATE),
    ("update_", AuditAction.UPDATE),
    ("delete_", AuditAction.DELETE),
    ("export_", AuditAction.EXPORT),
)

_OUTCOMES: Dict[str, Outcome] = {
    "success": Outcome.SUCCESS,
    "succeeded": Outcome.SUCCESS,
    "ok": Outcome.SUCCESS,
    "failure": Outcome.FAILURE,
    "failed": Outcome.FAILURE,
    "error": Outcome.FAILURE,
    "denied": Outcome.FAILURE,
    "warning": Outcome.WARNING,
    "warn": Outcome.WARNING,
    "pending": Outcome.PENDING,
}

_SEVERITIES: Dict[str, Severity] = {
    "low": Severity.LOW,
    "info": Severity.LOW,
    "medium": Severity.MEDIUM,
    "moderate": Severity.MEDIUM,
    "warning": Severity.MEDIUM,
    "high": Severity.HIGH,
    "error": Severity.HIGH,
    "critical": Severity.CRITICAL,
    "severe": Severity.CRITICAL,
}


def normalize_action(value: Any) -> AuditAction:
    if isinstance(value, AuditAction):
        return value
    if isinstance(value, str) and value.strip():
        key = value.strip()
        try:
            return AuditAction(key.upper())
        except ValueError:
            pass
        lowered = key.lower()
        if lowered in _LEGACY_ACTIONS:
            return _LEGACY_ACTIONS[lowered]
        for prefix, action in _LEGACY_ACTION_PREFIXES:
            if lowered.startswith(prefix):
                return action
    _log_fallback("action", value, FALLBACK_ACTION.value)
    return FALLBACK_ACTION


def normalize_outcome(value: Any) -> Outcome:
    if isinstance(value, Outcome):
        return value
    if value is None:
        return Outcome.SUCCESS
    outcome = _OUTCOMES.get(str(value).strip().lower())
    if outcome is None:
        _log_fallback("outcome", value, FALLBACK_OUTCOME.value)
        return FALLBACK_OUTCOME
    return outcome


def normalize_severity(value: Any) -> Severity:
    if isinstance(value, Severity):
        return value
    if value is None:
        return Severity.LOW
    severity = _SEVERITIES.get(str(value).strip().lower())
    if severity is None:
        _log_fallback("severity", value, FALLBACK_SEVERITY.value)
        return FALLBACK_SEVERITY
    return severity


def normalize_audit_entry(entry: Union[AuditEntry, Mapping[str, Any]]) -> AuditEntry:
    """Map current or legacy field names and vocabularies to a canonical AuditEntry."""
    if isinstance(entry, AuditEntry):
        raw: Mapping[str, Any] = {
            "actor_id": entry.actor_id,
            "actor_role": entry.actor_role,
            "action": entry.action,
            "entity_type": entry.entity_type,
            "entity_id": entry.entity_id,
            "tenant_id": entry.tenant_id,
            "outcome": entry.outcome,
            "severity": entry.severity,
            "details": entry.details,
            "before": entry.before,
            "after": entry.after,
            "timestamp": entry.timestamp,
        }
    else:
        raw = entry

    picked = {name: _pick(raw, keys) for name, keys in _FIELD_ALIASES.items()}
    consumed = {key for keys in _FIELD_ALIASES.values() for key in keys} | {"changes"}

    details = _as_dict(picked["details"])
    for key, target in _DETAIL_KEYS.items():
        if key in raw and raw[key] is not None:
            details.setdefault(target, _json_safe(raw[key]))
            consumed.add(key)
    for key in _unconsumed(raw, consumed):
        details.setdefault(key, _json_safe(raw[key]))

    before, after = picked["before"], picked["after"]
    changes = raw.get("changes")
    if isinstance(changes, Mapping):
        before = before if before is not None else changes.get("before")
        after = after if after is not None else changes.get("after")

    return AuditEntry(
        actor_id=_as_str(picked["actor_id"]) or UNKNOWN_ACTOR,
        actor_role=_as_str(picked["actor_role"]),
        action=normalize_action(picked["action"]),
        entity_type=_as_str(picked["entity_type"]) or UNKNOWN_ENTITY,
        entity_id=_as_str(picked["entity_id"]),
        tenant_id=_as_str(picked["tenant_id"]),
        outcome=normalize_outcome(picked["outcome"]),
        severity=normalize_severity(picked["severity"]),
        details=details,
        before=_as_snapshot(before),
        after=_as_snapshot(after),
        timestamp=_as_timestamp(picked["timestamp"]),
    )


def _pick(raw: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


def _unconsumed(raw: Mapping[str, Any], consumed: set) -> list:
    return [key for key in raw if key not in consumed and raw[key] is not None]


def _as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip() or None
    return str(value)


def _json_safe(value: Any) -> Any:
    try:
        return json.loads(json.dumps(value, default=str))
    except (TypeError, ValueError):
        return repr(value)


def _as_dict(value: Any) -> Dict[str, Any]:
    if value is None:
        return {}
    safe = _json_safe(value)
    if isinstance(safe, dict):
        return safe
    return {"value": safe}


def _as_snapshot(value: Any) -> Optional[Dict[str, Any]]:
    if value is None:
        return None
    return _as_dict(value)


def _as_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, str):
        try:
            ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            _log_fallback("timestamp", value, "now")
            return datetime.now(timezone.utc)
    else:
        return datetime.now(timezone.utc)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def _log_fallback(field_name: str, value: Any, fallback: str) -> None:
    logger.warning(
        "audit_entry_fallback",
        extra={"field": field_name, "raw_value": repr(value), "fallback": fallback},
    )
