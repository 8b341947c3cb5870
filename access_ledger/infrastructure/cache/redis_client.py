# access_ledger/infrastructure/cache/redis_client.py

import time
import uuid

import redis.asyncio as redis

_DELETE_IF_VALUE = (
    "if redis.call('get', KEYS[1]) == ARGV[1] then return redis.call('del', KEYS[1]) else return 0 end"
)


class RedisClient:
    """Lock backend for DistributedLock and sliding-window backend for ReadAuditSampler."""

    def __init__(self, url: str):
        self.client = redis.from_url(
            url,
            decode_responses=True,
        )

    async def set_nx_ex(self, key: str, value: str, ttl: int) -> bool:
        """Set key to value only if not exists, with TTL. Returns True if key was set."""
        return bool(await self.client.set(key, value, nx=True, ex=ttl))

    async def get(self, key: str) -> str | None:
        return await self.client.get(key)

    async def delete_if_value(self, key: str, value: str) -> bool:
        """Delete key only if its value equals value (atomic). Returns True if deleted."""
        result = await self.client.eval(_DELETE_IF_VALUE, 1, key, value)
        return bool(result)

    async def incr_window(self, key: str, window_seconds: int) -> int:
        """Record a hit in a sorted-set sliding window and return the hits inside it."""
        now = time.time()
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.zremrangebyscore(key, 0, now - window_seconds)
            pipe.zadd(key, {f"{now}:{uuid.uuid4().hex}": now})
            pipe.zcard(key)
            pipe.expire(key, window_seconds)
            _, _, count, _ = await pipe.execute()
        return int(count)

    async def close(self) -> None:
        await self.client.aclose()
