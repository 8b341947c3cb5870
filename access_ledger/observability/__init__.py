"""Observability layer: metrics. No external SaaS."""

from access_ledger.observability.metrics import MetricsCollector

__all__ = ["MetricsCollector"]
