"""Audit ledger API: listing, caller-supplied entries, integrity verification. No update or delete."""

from datetime import datetime
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from access_ledger.api.dependencies import Services, get_services, require_permission
from access_ledger.domain.models.permission import Verb
from access_ledger.domain.models.principal import Principal
from access_ledger.domain.schemas.audit import (
    AuditEntryRequest,
    AuditListResponse,
    AuditRecordResponse,
    BrokenLinkResponse,
    HashMismatchResponse,
    IntegrityReportResponse,
)
from access_ledger.governance.audit_models import AuditAction, AuditQuery, AuditRecord, Outcome, Severity

router = APIRouter()

CanView = Annotated[Principal, Depends(require_permission("audit_logs", Verb.VIEW))]


def _record_response(record: AuditRecord) -> AuditRecordResponse:
    return AuditRecordResponse(**record.to_dict())


@router.get("", response_model=AuditListResponse)
async def list_records(
    _caller: CanView,
    services: Annotated[Services, Depends(get_services)],
    actor_id: Optional[str] = None,
    action: Optional[AuditAction] = None,
    severity: Optional[Severity] = None,
    outcome: Optional[Outcome] = None,
    tenant_id: Optional[str] = None,
    entity_type: Optional[str] = None,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    query = AuditQuery(
        actor_id=actor_id,
        action=action,
        severity=severity,
        outcome=outcome,
        tenant_id=tenant_id,
        entity_type=entity_type,
        since=since,
        until=until,
        limit=limit,
        offset=offset,
    )
    records = await services.audit_chain.query(query)
    total = await services.audit_chain.count(query)
    return AuditListResponse(
        items=[_record_response(r) for r in records],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.post("", response_model=AuditRecordResponse, status_code=201)
async def append_record(
    body: AuditEntryRequest,
    caller: Annotated[Principal, Depends(require_permission("audit_logs", Verb.CREATE))],
    services: Annotated[Services, Depends(get_services)],
):
    entry = body.model_dump(exclude_none=True)
    entry["actor_id"] = caller.principal_id
    entry["actor_role"] = caller.role_label
    entry.setdefault("tenant_id", caller.tenant_id)
    return _record_response(await services.audit_chain.append(entry))


@router.get("/verify", response_model=IntegrityReportResponse)
async def verify(
    _caller: CanView,
    services: Annotated[Services, Depends(get_services)],
):
    report = await services.audit_chain.verify_integrity()
    return IntegrityReportResponse(
        total_records=report.total_records,
        intact=report.is_intact,
        broken_links=[
            BrokenLinkResponse(
                position=b.position,
                expected_previous_hash=b.expected_previous_hash,
                actual_previous_hash=b.actual_previous_hash,
            )
            for b in report.broken_links
        ],
        hash_mismatches=[
            HashMismatchResponse(position=m.position, stored_hash=m.stored_hash, computed_hash=m.computed_hash)
            for m in report.hash_mismatches
        ],
        verified_at=report.verified_at,
    )


@router.get("/suspicious", response_model=list[AuditRecordResponse])
async def suspicious(
    _caller: CanView,
    services: Annotated[Services, Depends(get_services)],
    hours: Annotated[int, Query(ge=1, le=24 * 90)] = 24,
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
):
    return [_record_response(r) for r in await services.audit_chain.find_suspicious(hours, limit)]


@router.put("/{position}")
async def update_record(position: int, services: Annotated[Services, Depends(get_services)]):
    await services.audit_chain.update(position)


@router.delete("/{position}")
async def delete_record(position: int, services: Annotated[Services, Depends(get_services)]):
    await services.audit_chain.delete(position)
