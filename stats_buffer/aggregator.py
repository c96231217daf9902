"""
Buffered metrics aggregation for the stats buffer.

Producers call ``update`` as often as they like; nothing leaves the process
until the background flush cycle runs, once per flush interval.
"""

import threading
from dataclasses import dataclass
from typing import Any, ClassVar, Mapping, Optional

from .config import StatsSettings, get_settings, validate_flush_interval, DEFAULT_FLUSH_INTERVAL_MS
from .errors import StatsBufferError
from .ledger import MetricLedger
from .logging import configure_logging, get_logger
from .metrics import BufferMetrics
from .models import MetricEntry, MetricIdentity, MetricKind, MetricUpdate
from .transport import MetricsTransport, TransportMode, build_transport, select_transport_mode


@dataclass
class FlushResult:
    """Outcome of one flush cycle."""
    emitted: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.emitted + self.failed


class StatsAggregator:
    """Merges metric updates in memory and flushes them on a timer.

    Use ``StatsAggregator.init(...)`` for the process-wide instance, or
    construct one directly and call ``start()`` when the owner manages its
    lifetime.
    """

    _instance: ClassVar[Optional["StatsAggregator"]] = None
    _instance_lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(
        self,
        transport: MetricsTransport,
        flush_interval_ms: int = DEFAULT_FLUSH_INTERVAL_MS,
        environment: Optional[str] = None,
        transport_mode: Optional[TransportMode] = None,
        metrics: Optional[BufferMetrics] = None
    ):
        self.flush_interval_ms = validate_flush_interval(flush_interval_ms)
        self.environment = environment
        self.transport = transport
        self.transport_mode = transport_mode
        self.ledger = MetricLedger()
        self.metrics = metrics or BufferMetrics()
        self.logger = get_logger("stats_buffer.aggregator")

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lifecycle_lock = threading.Lock()
        self.running = False
        self.closed = False

    @property
    def interval_seconds(self) -> float:
        return self.flush_interval_ms / 1000.0

    @classmethod
    def init(
        cls,
        flush_interval_ms: Optional[int] = None,
        environment: Optional[str] = None,
        logger: Optional[Any] = None,
        transport: Optional[MetricsTransport] = None,
        settings: Optional[StatsSettings] = None
    ) -> Optional["StatsAggregator"]:
        """Return the process-wide aggregator, creating and starting it once.

        ``environment`` defaults to ``STATS_ENV``. Without one, metrics are
        disabled: nothing is created and None is returned. ``logger`` is an
        optional diagnostics sink receiving one ``info`` notice per call.
        """
        with cls._instance_lock:
            if cls._instance is not None and not cls._instance.closed:
                return cls._instance

            settings = settings or get_settings()
            if environment is None:
                environment = settings.env
            if flush_interval_ms is None:
                flush_interval_ms = settings.flush_interval_ms

            if settings.configure_logging:
                configure_logging(settings.log_level)

            if not environment:
                _notify(logger, "StatsAggregator - no environment set - metrics disabled")
                return None

            mode = select_transport_mode(environment, settings.production_env)
            if transport is None:
                transport = build_transport(settings, environment)

            instance = cls(
                transport=transport,
                flush_interval_ms=flush_interval_ms,
                environment=environment,
                transport_mode=mode
            )
            instance.start()
            cls._instance = instance

        _notify(
            logger,
            f"StatsAggregator - environment is {environment} - transport {mode.value} - "
            f"flush interval {instance.flush_interval_ms}ms - initialized",
            environment=environment,
            transport_mode=mode.value,
            flush_interval_ms=instance.flush_interval_ms
        )
        return instance

    @classmethod
    def instance(cls) -> Optional["StatsAggregator"]:
        return cls._instance

    @classmethod
    def shutdown(cls, flush: bool = True) -> None:
        """Stop and forget the process-wide aggregator."""
        with cls._instance_lock:
            instance, cls._instance = cls._instance, None

        if instance is not None:
            instance.stop(flush=flush)

    def update(self, metrics: Mapping[str, Any]) -> None:
        """Merge a batch of updates into the ledger.

        ``metrics`` maps caller-chosen labels to updates; the labels only
        group the batch and are discarded. Each update carries its own name.
        The whole batch is validated before anything is merged.
        """
        updates = [MetricUpdate.parse(raw) for raw in metrics.values()]

        with self.ledger.lock:
            for item in updates:
                self.ledger.merge(item.name, item.kind, item.value, item.tags)

        for item in updates:
            self.metrics.record_update(item.kind.value)

    def flush(self) -> FlushResult:
        """Run one flush cycle.

        Counters are captured and zeroed in a single locked pass, then every
        captured entry is sent with the lock released. A delta merged after
        the capture lands in the next cycle. Send failures are logged per
        entry and never stop the cycle; failed counters stay reset.
        """
        result = FlushResult()

        with self.metrics.time_operation("flush_duration_seconds"):
            with self.ledger.lock:
                batch = list(self.ledger.drain_for_flush())
                for identity, entry in batch:
                    if entry.kind == MetricKind.COUNTER:
                        self.ledger.reset_counter(identity)

            for identity, entry in batch:
                if self._emit(identity, entry):
                    result.emitted += 1
                else:
                    result.failed += 1

        self.metrics.record_flush(len(self.ledger))
        self.logger.debug("Flush cycle complete", emitted=result.emitted, failed=result.failed)
        return result

    def _emit(self, identity: MetricIdentity, entry: MetricEntry) -> bool:
        kind = entry.kind.value
        try:
            if entry.kind == MetricKind.GAUGE:
                self.transport.emit_gauge(entry.name, entry.value, dict(entry.tags))
            else:
                self.transport.emit_counter_delta(entry.name, entry.value, dict(entry.tags))
        except Exception as e:
            self.logger.error(
                "Failed to emit metric",
                metric=identity.key,
                kind=kind,
                value=entry.value,
                error=str(e)
            )
            self.metrics.record_emit(kind, success=False)
            return False

        self.metrics.record_emit(kind)
        self.logger.debug("Metric emitted", metric=identity.key, kind=kind, value=entry.value)
        return True

    def start(self) -> None:
        """Start the background flush timer."""
        with self._lifecycle_lock:
            if self.closed:
                raise StatsBufferError("AGGREGATOR_CLOSED", "Aggregator has been stopped")
            if self.running:
                return

            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._flush_loop, name="StatsAggregatorFlush", daemon=True
            )
            self.running = True
            self._thread.start()

        self.logger.info("Stats aggregator started", flush_interval_ms=self.flush_interval_ms)

    def stop(self, flush: bool = True, timeout: Optional[float] = 5.0) -> None:
        """Stop the flush timer, optionally flush once more, and close the transport.

        A stopped process-wide instance is released, so a later ``init``
        creates a fresh one.
        """
        with self._lifecycle_lock:
            if self.closed:
                return
            self.closed = True
            self.running = False
            self._stop_event.set()
            thread, self._thread = self._thread, None

        cls = type(self)
        with cls._instance_lock:
            if cls._instance is self:
                cls._instance = None

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

        if flush:
            self.flush()

        close = getattr(self.transport, "close", None)
        if close is not None:
            close()

        self.logger.info("Stats aggregator stopped")

    def _flush_loop(self) -> None:
        while not self._stop_event.wait(self.interval_seconds):
            try:
                self.flush()
            except Exception as e:
                self.logger.error("Error in flush loop", error=str(e))


def update(metrics: Mapping[str, Any]) -> None:
    """Forward a batch to the process-wide aggregator.

    A no-op when metrics are disabled or ``init`` has not succeeded.
    """
    instance = StatsAggregator.instance()
    if instance is None:
        return
    instance.update(metrics)


def _notify(sink: Optional[Any], message: str, **fields) -> None:
    """Send an init notice to the diagnostics sink, or the package logger."""
    if sink is not None:
        sink.info(message)
        return
    get_logger("stats_buffer.aggregator").info(message, **fields)
