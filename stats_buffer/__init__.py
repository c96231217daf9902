"""
In-process metrics aggregation buffer.

Application code reports gauges and counters as often as it likes; the
buffer merges them per (name, tags) and flushes them to StatsD on a fixed
interval:

- aggregator: init gate, update entry point, flush cycle and timer
- ledger: per-identity merge, drain and counter reset
- models: metric kinds, identities, entries and update parsing
- transport: DogStatsD transport and mode selection
- config: settings via pydantic-settings
- logging: structlog configuration
- metrics: Prometheus counters for the buffer itself
- errors: exception types

Example::

    from stats_buffer import StatsAggregator, MetricKind

    stats = StatsAggregator.init(environment=os.environ.get("STATS_ENV"))
    if stats:
        stats.update({
            "processed": {"name": "processed_users", "kind": MetricKind.GAUGE, "value": 4,
                          "tags": {"datamart_id": "4521"}},
            "errors": {"name": "api_calls_error", "kind": MetricKind.COUNTER, "value": 1},
        })
"""

from .aggregator import FlushResult, StatsAggregator, update
from .config import StatsSettings, get_settings
from .errors import (
    ConfigurationError,
    StatsBufferError,
    TransportError,
    UnknownMetricError,
    ValidationError,
)
from .ledger import MetricLedger
from .models import MetricEntry, MetricIdentity, MetricKind, MetricUpdate
from .transport import DogStatsdTransport, MetricsTransport, TransportMode

__all__ = [
    "ConfigurationError",
    "DogStatsdTransport",
    "FlushResult",
    "MetricEntry",
    "MetricIdentity",
    "MetricKind",
    "MetricLedger",
    "MetricUpdate",
    "MetricsTransport",
    "StatsAggregator",
    "StatsBufferError",
    "StatsSettings",
    "TransportError",
    "TransportMode",
    "UnknownMetricError",
    "ValidationError",
    "get_settings",
    "update",
]
