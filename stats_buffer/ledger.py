"""
In-memory metric ledger for the stats buffer.
"""

import threading
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from .errors import UnknownMetricError
from .logging import get_logger
from .models import MetricEntry, MetricIdentity, MetricKind, Number, coerce_kind


class MetricLedger:
    """Accumulated metric state keyed by metric identity.

    Counters are summed between flushes; gauges keep the most recent value.
    Entries are never removed: a flushed counter is reset to zero in place so
    its kind and tags survive into the next cycle.
    """

    def __init__(self):
        self.logger = get_logger("stats_buffer.ledger")
        self._entries: Dict[MetricIdentity, MetricEntry] = {}
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        """Re-entrant lock guarding every ledger operation.

        Hold it to make a sequence of operations atomic with respect to
        other threads.
        """
        return self._lock

    def merge(
        self,
        name: str,
        kind: MetricKind,
        value: Number,
        tags: Optional[Mapping[str, Any]] = None
    ) -> MetricIdentity:
        """Merge one update into the ledger and return its identity."""
        kind = coerce_kind(kind)
        identity = MetricIdentity.of(name, tags)

        with self._lock:
            entry = self._entries.get(identity)

            if entry is None:
                self._entries[identity] = MetricEntry(
                    name=name,
                    kind=kind,
                    value=value,
                    tags=dict(identity.tags)
                )
                return identity

            if kind != entry.kind:
                # The first-seen kind wins; the value is still merged
                self.logger.warning(
                    "Metric kind mismatch",
                    metric=identity.key,
                    recorded_kind=entry.kind.value,
                    update_kind=kind.value
                )

            if entry.kind == MetricKind.COUNTER:
                entry.value += value
            else:
                entry.value = value

        return identity

    def drain_for_flush(self) -> Iterator[Tuple[MetricIdentity, MetricEntry]]:
        """Iterate snapshots of the ledger contents as of this call.

        The snapshot is taken eagerly, so later merges are not observed by
        the returned iterator. Nothing is removed from the ledger.
        """
        with self._lock:
            items: List[Tuple[MetricIdentity, MetricEntry]] = [
                (identity, entry.snapshot()) for identity, entry in self._entries.items()
            ]

        return iter(items)

    def reset_counter(self, identity: MetricIdentity) -> None:
        """Zero a counter entry, keeping its kind and tags."""
        with self._lock:
            entry = self._entries.get(identity)
            if entry is None:
                raise UnknownMetricError(identity.key)
            entry.value = 0

    def get(self, identity: MetricIdentity) -> Optional[MetricEntry]:
        """Return a snapshot of one entry, or None."""
        with self._lock:
            entry = self._entries.get(identity)
            return entry.snapshot() if entry is not None else None

    def lookup(self, name: str, tags: Optional[Mapping[str, Any]] = None) -> Optional[MetricEntry]:
        """Return a snapshot of the entry for (name, tags), or None."""
        return self.get(MetricIdentity.of(name, tags))

    def __contains__(self, identity: object) -> bool:
        with self._lock:
            return identity in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[Tuple[MetricIdentity, MetricEntry]]:
        return self.drain_for_flush()
