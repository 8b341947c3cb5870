"""DistributedLock over the in-memory backend: acquire/release, holder-only release, TTL."""

import asyncio

import pytest

from access_ledger.scalability.distributed_lock import DistributedLock, InMemoryLockBackend


@pytest.fixture
def backend():
    return InMemoryLockBackend()


@pytest.fixture
def lock(backend):
    return DistributedLock(backend=backend)


@pytest.mark.asyncio
async def test_acquire_release(lock):
    assert await lock.acquire("audit:integrity_sweep", ttl=60) is True
    await lock.release("audit:integrity_sweep")
    assert await lock.acquire("audit:integrity_sweep", ttl=60) is True


@pytest.mark.asyncio
async def test_acquire_fails_when_held(backend, lock):
    await lock.acquire("key1", ttl=60)
    other_node = DistributedLock(backend=backend)
    assert await other_node.acquire("key1", ttl=60) is False


@pytest.mark.asyncio
async def test_release_only_by_holder(backend, lock):
    await lock.acquire("key1", ttl=60)
    other_node = DistributedLock(backend=backend)
    await other_node.release("key1")
    assert await backend.get("lock:key1") is not None
    await lock.release("key1")
    assert await backend.get("lock:key1") is None


@pytest.mark.asyncio
async def test_lock_expires_after_ttl(backend, lock):
    await lock.acquire("key1", ttl=0.05)
    await asyncio.sleep(0.1)
    other_node = DistributedLock(backend=backend)
    assert await other_node.acquire("key1", ttl=60) is True
