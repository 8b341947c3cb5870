"""Scalability layer: circuit breaker, distributed locking, audit sampling. No FastAPI."""

from access_ledger.scalability.circuit_breaker import CircuitBreaker, CircuitOpenError, CircuitState
from access_ledger.scalability.distributed_lock import DistributedLock, InMemoryLockBackend
from access_ledger.scalability.sampling import InMemoryWindowBackend, ReadAuditSampler

__all__ = [
    "CircuitBreaker",
    "CircuitOpenError",
    "CircuitState",
    "DistributedLock",
    "InMemoryLockBackend",
    "InMemoryWindowBackend",
    "ReadAuditSampler",
]
