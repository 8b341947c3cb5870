"""Circuit breaker: CLOSED, OPEN, HALF_OPEN. Guards permission-store reads so a dead store fails fast."""

import asyncio
import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(RuntimeError):
    """Raised instead of calling through while the circuit is OPEN."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Circuit breaker {name} is OPEN")


class CircuitBreaker:
    """
    After failure_threshold consecutive failures, open for recovery_timeout_seconds,
    then half-open for one trial call. Async-safe via asyncio.Lock.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout_seconds: float = 30.0,
        name: str = "default",
        metrics_callback: Any = None,
    ) -> None:
        self._threshold = failure_threshold
        self._recovery_timeout = recovery_timeout_seconds
        self._name = name
        self._metrics = metrics_callback
        self._state = CircuitState.CLOSED
        self._failures = 0
        self._last_failure_time: float | None = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def name(self) -> str:
        return self._name

    def _record_success(self) -> None:
        if self._state == CircuitState.HALF_OPEN:
            logger.info("circuit_breaker_closed", extra={"breaker": self._name})
        self._failures = 0
        self._state = CircuitState.CLOSED

    def _record_failure(self) -> None:
        self._last_failure_time = time.monotonic()
        self._failures += 1
        if self._metrics is not None:
            self._metrics.increment("circuit_breaker_failure", 1, category=self._name)
        if self._failures >= self._threshold and self._state != CircuitState.OPEN:
            self._state = CircuitState.OPEN
            logger.warning(
                "circuit_breaker_opened",
                extra={"breaker": self._name, "failures": self._failures, "recovery_seconds": self._recovery_timeout},
            )
            if self._metrics is not None:
                self._metrics.increment("circuit_breaker_opened", 1, category=self._name)

    async def call(
        self,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """Execute func through the circuit. Raises CircuitOpenError while OPEN."""
        async with self._lock:
            if self._state == CircuitState.OPEN:
                elapsed_ok = (
                    self._last_failure_time is not None
                    and time.monotonic() - self._last_failure_time >= self._recovery_timeout
                )
                if not elapsed_ok:
                    raise CircuitOpenError(self._name)
                self._state = CircuitState.HALF_OPEN
        try:
            result = await func(*args, **kwargs)
        except Exception:
            async with self._lock:
                self._record_failure()
                if self._state == CircuitState.HALF_OPEN:
                    self._state = CircuitState.OPEN
            raise
        async with self._lock:
            self._record_success()
        return result
