"""Sliding-window sampler deciding which read ALLOW decisions get an audit record."""

import time
from typing import Any, Protocol


class WindowBackend(Protocol):
    """Sliding-window counter state. Injected."""

    async def incr_window(self, key: str, window_seconds: int) -> int: ...


class InMemoryWindowBackend:
    """In-memory sliding window: key -> list of timestamps. Single-node."""

    def __init__(self) -> None:
        self._windows: dict[str, list[float]] = {}

    async def incr_window(self, key: str, window_seconds: int) -> int:
        now = time.monotonic()
        cutoff = now - window_seconds
        hits = [t for t in self._windows.get(key, []) if t > cutoff]
        hits.append(now)
        self._windows[key] = hits
        return len(hits)


class ReadAuditSampler:
    """
    Admit at most ``per_window`` read-ALLOW audits per (principal, module, verb)
    inside each sliding window. Everything over the limit is counted, not audited.
    """

    def __init__(
        self,
        backend: WindowBackend,
        per_window: int = 1,
        window_seconds: int = 60,
        metrics_callback: Any = None,
    ) -> None:
        self._backend = backend
        self._limit = per_window
        self._window = window_seconds
        self._metrics = metrics_callback
        self._key_prefix = "audit:read:"

    def _key(self, principal_id: str, module: str, verb: str) -> str:
        return f"{self._key_prefix}{principal_id}:{module}:{verb}"

    async def should_audit(self, principal_id: str, module: str, verb: str) -> bool:
        count = await self._backend.incr_window(self._key(principal_id, module, verb), self._window)
        admitted = count <= self._limit
        if not admitted and self._metrics is not None:
            self._metrics.increment("read_allow_audit_sampled_out", 1, category=module)
        return admitted
