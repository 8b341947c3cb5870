"""In-memory Prometheus-style metrics: authorization decisions, audit appends, integrity sweeps."""

import threading
from typing import Any


def _series_key(name: str, labels: dict[str, str]) -> str:
    if not labels:
        return name
    rendered = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
    return f"{name}{{{rendered}}}"


class MetricsCollector:
    """
    Counters and latency histograms keyed by name plus optional labels.
    Thread-safe. Exposes increment, observe_latency, counter, export_metrics.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: dict[str, float] = {}
        self._histograms: dict[str, list[float]] = {}

    def increment(
        self,
        name: str,
        value: float = 1.0,
        *,
        tenant_id: str | None = None,
        category: str | None = None,
        outcome: str | None = None,
    ) -> None:
        """Increment a counter. tenant_id / category / outcome become labels when given."""
        labels = {
            k: v
            for k, v in (("tenant", tenant_id), ("category", category), ("outcome", outcome))
            if v is not None
        }
        key = _series_key(name, labels)
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + value

    def observe_latency(self, name: str, latency_ms: float, *, category: str | None = None) -> None:
        """Record a latency observation in milliseconds."""
        key = _series_key(name, {"category": category} if category else {})
        with self._lock:
            self._histograms.setdefault(key, []).append(latency_ms)

    def counter(self, name: str, **labels: str) -> float:
        """Current value of one counter series (0 if never incremented)."""
        with self._lock:
            return self._counters.get(_series_key(name, labels), 0)

    def export_metrics(self) -> dict[str, Any]:
        with self._lock:
            return {
                "counters": dict(self._counters),
                "histograms": {
                    k: {"count": len(v), "sum": sum(v), "max": max(v)}
                    for k, v in self._histograms.items()
                    if v
                },
            }

    def reset(self) -> None:
        """Reset all metrics (for tests)."""
        with self._lock:
            self._counters.clear()
            self._histograms.clear()
