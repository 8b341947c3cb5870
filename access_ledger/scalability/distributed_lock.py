"""Distributed locking (SET NX EX pattern, TTL, safe release). Keeps integrity sweeps to one node at a time."""

import time
import uuid
from typing import Protocol


class LockBackend(Protocol):
    """Minimal key/value operations for the lock. RedisClient implements it."""

    async def set_nx_ex(self, key: str, value: str, ttl: int) -> bool: ...
    async def get(self, key: str) -> str | None: ...
    async def delete_if_value(self, key: str, value: str) -> bool: ...


class InMemoryLockBackend:
    """Single-node backend: key -> (value, expires_at). For tests or when Redis is not configured."""

    def __init__(self) -> None:
        self._entries: dict[str, tuple[str, float]] = {}

    def _live(self, key: str) -> tuple[str, float] | None:
        entry = self._entries.get(key)
        if entry is not None and entry[1] <= time.monotonic():
            del self._entries[key]
            return None
        return entry

    async def set_nx_ex(self, key: str, value: str, ttl: int) -> bool:
        if self._live(key) is not None:
            return False
        self._entries[key] = (value, time.monotonic() + ttl)
        return True

    async def get(self, key: str) -> str | None:
        entry = self._live(key)
        return entry[0] if entry else None

    async def delete_if_value(self, key: str, value: str) -> bool:
        entry = self._live(key)
        if entry is None or entry[0] != value:
            return False
        del self._entries[key]
        return True


LOCK_PREFIX = "lock:"


class DistributedLock:
    """
    Lock using SET NX EX. A unique token per acquire so only the holder can release.
    """

    def __init__(self, backend: LockBackend, key_prefix: str = LOCK_PREFIX) -> None:
        self._backend = backend
        self._prefix = key_prefix
        self._tokens: dict[str, str] = {}

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def acquire(self, key: str, ttl: int) -> bool:
        """Returns True if acquired, False if already held. Lock auto-expires after ttl."""
        token = str(uuid.uuid4())
        acquired = await self._backend.set_nx_ex(self._key(key), token, ttl)
        if acquired:
            self._tokens[key] = token
        return acquired

    async def release(self, key: str) -> None:
        """Release only if we hold it (atomic compare-and-delete)."""
        token = self._tokens.pop(key, None)
        if token is not None:
            await self._backend.delete_if_value(self._key(key), token)
