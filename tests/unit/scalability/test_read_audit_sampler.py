"""ReadAuditSampler: sliding-window admission of read ALLOW audits."""

import pytest

from access_ledger.observability.metrics import MetricsCollector
from access_ledger.scalability.sampling import InMemoryWindowBackend, ReadAuditSampler


@pytest.mark.asyncio
async def test_admits_up_to_limit_per_key():
    metrics = MetricsCollector()
    sampler = ReadAuditSampler(InMemoryWindowBackend(), per_window=2, window_seconds=60, metrics_callback=metrics)

    results = [await sampler.should_audit("p1", "orders", "view") for _ in range(4)]

    assert results == [True, True, False, False]
    assert metrics.counter("read_allow_audit_sampled_out", category="orders") == 2


@pytest.mark.asyncio
async def test_keys_are_independent():
    sampler = ReadAuditSampler(InMemoryWindowBackend(), per_window=1)
    assert await sampler.should_audit("p1", "orders", "view")
    assert await sampler.should_audit("p2", "orders", "view")
    assert await sampler.should_audit("p1", "staff", "view")
    assert not await sampler.should_audit("p1", "orders", "view")


@pytest.mark.asyncio
async def test_window_slides():
    backend = InMemoryWindowBackend()
    sampler = ReadAuditSampler(backend, per_window=1, window_seconds=60)
    assert await sampler.should_audit("p1", "orders", "view")
    # Age the recorded hit out of the window.
    key = "audit:read:p1:orders:view"
    backend._windows[key] = [t - 120 for t in backend._windows[key]]
    assert await sampler.should_audit("p1", "orders", "view")
