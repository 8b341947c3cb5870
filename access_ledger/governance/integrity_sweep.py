"""Periodic audit chain verification, one node at a time."""

import asyncio
import logging
from typing import Any, Optional

from access_ledger.governance.audit_chain import AuditChain
from access_ledger.governance.audit_models import IntegrityReport
from access_ledger.scalability.distributed_lock import DistributedLock

logger = logging.getLogger(__name__)

SWEEP_LOCK_KEY = "audit:integrity_sweep"


class IntegritySweeper:
    """Runs verify_integrity under a distributed lock so concurrent nodes do not repeat the scan."""

    def __init__(
        self,
        audit_chain: AuditChain,
        lock: DistributedLock,
        *,
        interval_seconds: int,
        lock_ttl: int = 300,
        metrics: Any = None,
    ) -> None:
        self._chain = audit_chain
        self._lock = lock
        self._interval = interval_seconds
        self._lock_ttl = lock_ttl
        self._metrics = metrics
        self._task: Optional[asyncio.Task] = None

    async def sweep_once(self) -> Optional[IntegrityReport]:
        """Returns the report, or None if another node holds the sweep lock."""
        if not await self._lock.acquire(SWEEP_LOCK_KEY, self._lock_ttl):
            logger.info("integrity_sweep_skipped", extra={"reason": "lock_held"})
            return None
        try:
            report = await self._chain.verify_integrity()
        finally:
            await self._lock.release(SWEEP_LOCK_KEY)
        if self._metrics is not None:
            self._metrics.increment("integrity_sweeps", 1, outcome="intact" if report.is_intact else "broken")
        if not report.is_intact:
            logger.error(
                "integrity_sweep_broken_chain",
                extra={
                    "total_records": report.total_records,
                    "broken_links": [b.position for b in report.broken_links],
                    "hash_mismatches": [m.position for m in report.hash_mismatches],
                },
            )
        return report

    async def run_forever(self) -> None:
        while True:
            try:
                await self.sweep_once()
            except Exception:
                logger.exception("integrity_sweep_failed")
            await asyncio.sleep(self._interval)

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run_forever())
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
