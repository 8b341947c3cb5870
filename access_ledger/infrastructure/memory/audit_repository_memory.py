"""In-memory audit repository. Single process; used for tests and when no database is configured."""

from typing import AsyncIterator, List, Optional

from access_ledger.governance.audit_models import AuditQuery, AuditRecord
from access_ledger.governance.exceptions import SequenceConflictError


class InMemoryAuditRepository:
    """Implements AuditRepository. Positions are contiguous from 1."""

    def __init__(self) -> None:
        self._records: List[AuditRecord] = []

    async def get_tail(self) -> Optional[AuditRecord]:
        return self._records[-1] if self._records else None

    async def insert(self, record: AuditRecord) -> None:
        if record.position != len(self._records) + 1:
            raise SequenceConflictError(
                f"Audit position {record.position} already taken", position=record.position
            )
        self._records.append(record)

    async def iter_in_order(self) -> AsyncIterator[AuditRecord]:
        for record in list(self._records):
            yield record

    async def query(self, query: AuditQuery) -> List[AuditRecord]:
        matched = [r for r in reversed(self._records) if query.matches(r)]
        return matched[query.offset : query.offset + query.limit]

    async def count(self, query: Optional[AuditQuery] = None) -> int:
        if query is None:
            return len(self._records)
        return sum(1 for r in self._records if query.matches(r))
