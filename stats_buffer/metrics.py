"""
Prometheus instrumentation of the stats buffer itself.
"""

import time
from contextlib import contextmanager
from typing import Any, Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest


class BufferMetrics:
    """Counters and timings describing the buffer's own activity.

    Each instance owns its registry so several aggregators (or test runs) do
    not collide on metric names.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        self._metrics["updates_total"] = Counter(
            "statsbuffer_updates_total",
            "Metric updates merged into the ledger",
            ["kind"],
            registry=self.registry
        )

        self._metrics["flushes_total"] = Counter(
            "statsbuffer_flushes_total",
            "Completed flush cycles",
            registry=self.registry
        )

        self._metrics["emits_total"] = Counter(
            "statsbuffer_emits_total",
            "Metrics handed to the transport",
            ["kind"],
            registry=self.registry
        )

        self._metrics["emit_failures_total"] = Counter(
            "statsbuffer_emit_failures_total",
            "Transport sends that raised",
            ["kind"],
            registry=self.registry
        )

        self._metrics["ledger_entries"] = Gauge(
            "statsbuffer_ledger_entries",
            "Distinct metric identities held in the ledger",
            registry=self.registry
        )

        self._metrics["flush_duration_seconds"] = Histogram(
            "statsbuffer_flush_duration_seconds",
            "Flush cycle duration in seconds",
            registry=self.registry
        )

    def get_metric(self, name: str):
        return self._metrics.get(name)

    def record_update(self, kind: str):
        self._metrics["updates_total"].labels(kind=kind).inc()

    def record_emit(self, kind: str, success: bool = True):
        self._metrics["emits_total"].labels(kind=kind).inc()
        if not success:
            self._metrics["emit_failures_total"].labels(kind=kind).inc()

    def record_flush(self, ledger_size: int):
        self._metrics["flushes_total"].inc()
        self._metrics["ledger_entries"].set(ledger_size)

    @contextmanager
    def time_operation(self, operation_name: str = "flush_duration_seconds"):
        """Context manager to time an operation."""
        start_time = time.perf_counter()
        try:
            yield
        finally:
            duration = time.perf_counter() - start_time
            self._metrics[operation_name].observe(duration)

    def sample(self, name: str, labels: Optional[Dict[str, str]] = None) -> float:
        """Read a sample value from the registry (0 when absent)."""
        value = self.registry.get_sample_value(name, labels or {})
        return value or 0.0

    def render(self) -> str:
        """Prometheus text exposition of the buffer metrics."""
        return generate_latest(self.registry).decode("utf-8")
