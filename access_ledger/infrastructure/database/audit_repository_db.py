"""DB-backed audit repository (audit_records table). Insert-only; CAS on the position primary key."""

from datetime import timezone
from typing import AsyncIterator, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker

from access_ledger.governance.audit_models import (
    SUSPICIOUS_ACTIONS,
    SUSPICIOUS_SEVERITIES,
    AuditAction,
    AuditQuery,
    AuditRecord,
    Outcome,
    Severity,
)
from access_ledger.governance.exceptions import SequenceConflictError
from access_ledger.infrastructure.database.models import AuditRecordRow

ITER_BATCH_SIZE = 500


def _to_record(row: AuditRecordRow) -> AuditRecord:
    timestamp = row.timestamp
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return AuditRecord(
        position=row.position,
        timestamp=timestamp,
        actor_id=row.actor_id,
        actor_role=row.actor_role,
        action=AuditAction(row.action),
        entity_type=row.entity_type,
        entity_id=row.entity_id,
        tenant_id=row.tenant_id,
        outcome=Outcome(row.outcome),
        severity=Severity(row.severity),
        details=row.details or {},
        before=row.before,
        after=row.after,
        hash=row.hash,
        previous_hash=row.previous_hash,
    )


def _to_row(record: AuditRecord) -> AuditRecordRow:
    return AuditRecordRow(
        position=record.position,
        timestamp=record.timestamp,
        actor_id=record.actor_id,
        actor_role=record.actor_role,
        action=record.action.value,
        entity_type=record.entity_type,
        entity_id=record.entity_id,
        tenant_id=record.tenant_id,
        outcome=record.outcome.value,
        severity=record.severity.value,
        details=record.details,
        before=record.before,
        after=record.after,
        hash=record.hash,
        previous_hash=record.previous_hash,
    )


def _filters(query: AuditQuery) -> list:
    clauses = []
    if query.actor_id is not None:
        clauses.append(AuditRecordRow.actor_id == query.actor_id)
    if query.action is not None:
        clauses.append(AuditRecordRow.action == query.action.value)
    if query.severity is not None:
        clauses.append(AuditRecordRow.severity == query.severity.value)
    if query.outcome is not None:
        clauses.append(AuditRecordRow.outcome == query.outcome.value)
    if query.tenant_id is not None:
        clauses.append(AuditRecordRow.tenant_id == query.tenant_id)
    if query.entity_type is not None:
        clauses.append(AuditRecordRow.entity_type == query.entity_type)
    if query.since is not None:
        clauses.append(AuditRecordRow.timestamp >= query.since)
    if query.until is not None:
        clauses.append(AuditRecordRow.timestamp <= query.until)
    if query.suspicious:
        clauses.append(
            or_(
                AuditRecordRow.action.in_([a.value for a in SUSPICIOUS_ACTIONS]),
                AuditRecordRow.outcome == Outcome.FAILURE.value,
                AuditRecordRow.severity.in_([s.value for s in SUSPICIOUS_SEVERITIES]),
            )
        )
    return clauses


class DbAuditRepository:
    """Implements AuditRepository. One short session per operation."""

    def __init__(self, session_factory: async_sessionmaker) -> None:
        self._sessions = session_factory

    async def get_tail(self) -> Optional[AuditRecord]:
        async with self._sessions() as session:
            stmt = select(AuditRecordRow).order_by(AuditRecordRow.position.desc()).limit(1)
            row = (await session.execute(stmt)).scalar_one_or_none()
            return _to_record(row) if row is not None else None

    async def insert(self, record: AuditRecord) -> None:
        async with self._sessions() as session:
            session.add(_to_row(record))
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise SequenceConflictError(
                    f"Audit position {record.position} already taken", position=record.position
                ) from exc

    async def iter_in_order(self) -> AsyncIterator[AuditRecord]:
        last_position = 0
        while True:
            async with self._sessions() as session:
                stmt = (
                    select(AuditRecordRow)
                    .where(AuditRecordRow.position > last_position)
                    .order_by(AuditRecordRow.position.asc())
                    .limit(ITER_BATCH_SIZE)
                )
                rows = (await session.execute(stmt)).scalars().all()
            if not rows:
                return
            for row in rows:
                yield _to_record(row)
            last_position = rows[-1].position

    async def query(self, query: AuditQuery) -> List[AuditRecord]:
        async with self._sessions() as session:
            stmt = (
                select(AuditRecordRow)
                .where(*_filters(query))
                .order_by(AuditRecordRow.position.desc())
                .offset(query.offset)
                .limit(query.limit)
            )
            rows = (await session.execute(stmt)).scalars().all()
            return [_to_record(row) for row in rows]

    async def count(self, query: Optional[AuditQuery] = None) -> int:
        async with self._sessions() as session:
            stmt = select(func.count()).select_from(AuditRecordRow)
            if query is not None:
                stmt = stmt.where(*_filters(query))
            return int((await session.execute(stmt)).scalar_one())
