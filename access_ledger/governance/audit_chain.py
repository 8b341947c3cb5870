"""Append-only, hash-chained audit ledger. No FastAPI."""

import asyncio
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, List, Mapping, Optional, Union

from access_ledger.governance.audit_models import (
    AuditEntry,
    AuditQuery,
    AuditRecord,
    BrokenLink,
    HashMismatch,
    IntegrityReport,
    compute_content_hash,
)
from access_ledger.governance.audit_normalizer import normalize_audit_entry
from access_ledger.governance.audit_repository import AuditRepository
from access_ledger.governance.exceptions import (
    AuditImmutableError,
    AuditWriteFailure,
    SequenceConflictError,
)

logger = logging.getLogger(__name__)

RETRY_BACKOFF_SECONDS = 0.01


class AuditChain:
    """
    Sole owner of the audit sequence.

    append() serializes writers in-process with an asyncio.Lock; the repository's
    compare-and-swap insert covers writers in other processes. A position conflict
    or storage error is retried against the fresh tail up to ``max_retries`` times,
    then surfaced as AuditWriteFailure. Records are never updated or deleted.
    """

    def __init__(
        self,
        repository: AuditRepository,
        *,
        max_retries: int = 5,
        timeout_seconds: float = 5.0,
        metrics: Any = None,
    ) -> None:
        self._repository = repository
        self._max_retries = max(1, max_retries)
        self._timeout = timeout_seconds
        self._metrics = metrics
        self._lock = asyncio.Lock()

    async def append(self, entry: Union[AuditEntry, Mapping[str, Any]]) -> AuditRecord:
        """Normalize, link to the current tail and persist. Raises AuditWriteFailure."""
        normalized = normalize_audit_entry(entry)
        started = time.perf_counter()
        try:
            record = await asyncio.wait_for(self._append_serialized(normalized), self._timeout)
        except asyncio.TimeoutError:
            self._count("audit_append_failures", "timeout")
            logger.error(
                "audit_append_failed",
                extra={"reason": "timeout", "timeout_seconds": self._timeout, "action": normalized.action.value},
            )
            raise AuditWriteFailure(
                f"Audit append did not complete within {self._timeout}s"
            ) from None
        if self._metrics is not None:
            self._metrics.increment("audit_appends", 1, category=record.action.value)
            self._metrics.observe_latency("audit_append_latency_ms", (time.perf_counter() - started) * 1000)
        logger.info(
            "audit_record_appended",
            extra={
                "position": record.position,
                "action": record.action.value,
                "actor_id": record.actor_id,
                "outcome": record.outcome.value,
            },
        )
        return record

    async def _append_serialized(self, entry: AuditEntry) -> AuditRecord:
        content_hash = compute_content_hash(entry)
        last_error: Optional[Exception] = None
        async with self._lock:
            for attempt in range(1, self._max_retries + 1):
                try:
                    tail = await self._repository.get_tail()
                    record = AuditRecord.from_entry(
                        entry,
                        position=1 if tail is None else tail.position + 1,
                        content_hash=content_hash,
                        previous_hash=None if tail is None else tail.hash,
                    )
                    await self._repository.insert(record)
                    return record
                except SequenceConflictError as exc:
                    last_error = exc
                    self._count("audit_append_conflicts", "conflict")
                    logger.warning(
                        "audit_append_conflict",
                        extra={"position": exc.position, "attempt": attempt},
                    )
                except Exception as exc:
                    last_error = exc
                    self._count("audit_append_retries", "storage")
                    logger.warning(
                        "audit_append_retry",
                        extra={"attempt": attempt, "error": str(exc)},
                    )
                await asyncio.sleep(RETRY_BACKOFF_SECONDS * attempt)
        self._count("audit_append_failures", "exhausted")
        logger.error(
            "audit_append_failed",
            extra={"reason": "retries_exhausted", "attempts": self._max_retries, "error": str(last_error)},
        )
        raise AuditWriteFailure(
            f"Audit append failed after {self._max_retries} attempts: {last_error}"
        )

    async def update(self, position: int, **changes: Any) -> None:
        """Audit records are immutable. Always raises AuditImmutableError."""
        logger.warning("audit_mutation_rejected", extra={"operation": "update", "position": position})
        raise AuditImmutableError(f"Audit record {position} cannot be updated")

    async def delete(self, position: int) -> None:
        """Audit records are immutable. Always raises AuditImmutableError."""
        logger.warning("audit_mutation_rejected", extra={"operation": "delete", "position": position})
        raise AuditImmutableError(f"Audit record {position} cannot be deleted")

    async def verify_integrity(self) -> IntegrityReport:
        """
        Walk the chain in position order and collect every broken link and every
        stored hash that no longer matches its content. Violations are returned,
        not raised.
        """
        total = 0
        broken: List[BrokenLink] = []
        mismatches: List[HashMismatch] = []
        previous: Optional[AuditRecord] = None
        async for record in self._repository.iter_in_order():
            total += 1
            expected = None if previous is None else previous.hash
            if record.previous_hash != expected:
                broken.append(
                    BrokenLink(
                        position=record.position,
                        expected_previous_hash=expected,
                        actual_previous_hash=record.previous_hash,
                    )
                )
            computed = compute_content_hash(record)
            if computed != record.hash:
                mismatches.append(
                    HashMismatch(position=record.position, stored_hash=record.hash, computed_hash=computed)
                )
            previous = record
        report = IntegrityReport(
            total_records=total,
            broken_links=tuple(broken),
            hash_mismatches=tuple(mismatches),
        )
        if self._metrics is not None:
            self._metrics.increment("audit_integrity_checks", 1, outcome="intact" if report.is_intact else "broken")
            if broken:
                self._metrics.increment("integrity_broken_links", len(broken))
        if report.is_intact:
            logger.info("audit_integrity_verified", extra={"total_records": total})
        else:
            logger.error(
                "audit_integrity_violation",
                extra={
                    "total_records": total,
                    "broken_links": [b.position for b in broken],
                    "hash_mismatches": [m.position for m in mismatches],
                },
            )
        return report

    async def query(self, query: Optional[AuditQuery] = None) -> List[AuditRecord]:
        return await self._repository.query(query or AuditQuery())

    async def count(self, query: Optional[AuditQuery] = None) -> int:
        return await self._repository.count(query)

    async def find_suspicious(self, hours: int = 24, limit: int = 100) -> List[AuditRecord]:
        """Denials, failed logins, failures and high/critical records from the last ``hours``."""
        since = datetime.now(timezone.utc) - timedelta(hours=hours)
        return await self._repository.query(AuditQuery(since=since, suspicious=True, limit=limit))

    def _count(self, name: str, category: str) -> None:
        if self._metrics is not None:
            self._metrics.increment(name, 1, category=category)
