"""Audit repository protocol. Append-only: there is deliberately no update or delete."""

from typing import AsyncIterator, List, Optional, Protocol

from access_ledger.governance.audit_models import AuditQuery, AuditRecord


class AuditRepository(Protocol):
    """Storage for hash-chained audit records. Infrastructure implements it."""

    async def get_tail(self) -> Optional[AuditRecord]:
        """Return the record with the highest position, or None for an empty chain."""
        ...

    async def insert(self, record: AuditRecord) -> None:
        """
        Insert ``record`` at ``record.position``. Compare-and-swap: raises
        SequenceConflictError if that position is already taken.
        """
        ...

    def iter_in_order(self) -> AsyncIterator[AuditRecord]:
        """Yield every record in ascending position order."""
        ...

    async def query(self, query: AuditQuery) -> List[AuditRecord]:
        """Filtered listing, newest first, honouring limit/offset."""
        ...

    async def count(self, query: Optional[AuditQuery] = None) -> int:
        ...
