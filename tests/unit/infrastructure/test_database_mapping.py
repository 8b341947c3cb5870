"""Row mapping for the database repositories. No database connection needed."""

import logging
from datetime import datetime

from access_ledger.domain.models.permission import Verb
from access_ledger.domain.models.role import RoleStatus
from access_ledger.governance.audit_models import AuditAction, AuditEntry, AuditRecord, compute_content_hash
from access_ledger.infrastructure.database.audit_repository_db import _to_record, _to_row
from access_ledger.infrastructure.database.models import RoleRow
from access_ledger.infrastructure.database.role_repository_db import _to_role, decode_stored_permissions


def test_stored_permissions_in_any_shape_decode():
    decoded = decode_stored_permissions("ops", {"orders": "rc", "staff": {"view": True}, "coupons": ["remove"]})
    assert decoded["orders"].granted == {Verb.VIEW, Verb.CREATE}
    assert decoded["staff"].granted == {Verb.VIEW}
    assert decoded["coupons"].granted == {Verb.DELETE}


def test_undecodable_stored_module_is_skipped_and_logged(caplog):
    with caplog.at_level(logging.ERROR, logger="access_ledger.infrastructure.database.role_repository_db"):
        decoded = decode_stored_permissions("ops", {"orders": 4, "staff": "r"})
    assert set(decoded) == {"staff"}
    record = next(r for r in caplog.records if r.getMessage() == "permission_config_error")
    assert record.source == "role:ops"
    assert record.permission_module == "orders"


def test_role_row_maps_to_definition_with_utc_timestamps():
    row = RoleRow(
        slug="ops",
        name="Ops",
        description=None,
        status="active",
        is_default=False,
        permissions={"orders": True},
        version=4,
        created_at=datetime(2024, 1, 1, 9, 0),
        updated_at=None,
        created_by="admin",
        updated_by=None,
    )
    role = _to_role(row)
    assert role.status == RoleStatus.ACTIVE
    assert role.compact_permissions() == {"orders": "rcude"}
    assert role.version == 4
    assert role.description == ""
    assert role.created_at.tzinfo is not None


def test_audit_row_round_trip_keeps_hash_valid():
    entry = AuditEntry(
        actor_id="admin-1",
        action=AuditAction.UPDATE_ROLE,
        entity_type="role",
        entity_id="ops",
        details={"version": 2},
        before={"permissions": {"orders": "r"}},
        after={"permissions": {"orders": "rc"}},
    )
    record = AuditRecord.from_entry(entry, position=7, content_hash=compute_content_hash(entry), previous_hash="p" * 64)
    restored = _to_record(_to_row(record))
    assert restored == record
    assert compute_content_hash(restored) == record.hash
