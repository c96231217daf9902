"""
Unit tests for MetricLedger.
"""

import pytest

from stats_buffer.errors import UnknownMetricError
from stats_buffer.ledger import MetricLedger
from stats_buffer.models import MetricIdentity, MetricKind


class TestMetricLedger:
    """Test cases for MetricLedger."""

    @pytest.fixture
    def ledger(self):
        """Create an empty ledger."""
        return MetricLedger()

    def test_merge_inserts_new_entry(self, ledger):
        """Test first update for an identity creates an entry."""
        identity = ledger.merge("reqs", MetricKind.COUNTER, 3, {"route": "/a"})

        entry = ledger.get(identity)
        assert len(ledger) == 1
        assert entry.name == "reqs"
        assert entry.kind == MetricKind.COUNTER
        assert entry.value == 3
        assert entry.tags == {"route": "/a"}

    def test_counter_values_are_summed(self, ledger):
        """Test counter merges add up every delta."""
        for value in (1, 2, 3.5, 4):
            ledger.merge("reqs", MetricKind.COUNTER, value)

        assert ledger.lookup("reqs").value == 10.5
        assert len(ledger) == 1

    def test_gauge_values_are_replaced(self, ledger):
        """Test gauge merges keep only the latest value."""
        ledger.merge("queue_depth", MetricKind.GAUGE, 4, {"shard": "1"})
        ledger.merge("queue_depth", MetricKind.GAUGE, 7, {"shard": "1"})

        assert ledger.lookup("queue_depth", {"shard": "1"}).value == 7

    def test_tag_order_does_not_split_identity(self, ledger):
        """Test differently ordered tag maps land on one entry."""
        first = ledger.merge("reqs", MetricKind.COUNTER, 1, {"a": "1", "b": "2"})
        second = ledger.merge("reqs", MetricKind.COUNTER, 1, {"b": "2", "a": "1"})

        assert first == second
        assert len(ledger) == 1
        assert ledger.get(first).value == 2

    def test_different_tags_are_different_identities(self, ledger):
        """Test same name with different tag values is tracked separately."""
        ledger.merge("reqs", MetricKind.COUNTER, 1, {"status": "200"})
        ledger.merge("reqs", MetricKind.COUNTER, 1, {"status": "500"})
        ledger.merge("reqs", MetricKind.COUNTER, 1)

        assert len(ledger) == 3

    def test_first_kind_wins(self, ledger):
        """Test a later update with a different kind does not change the kind."""
        identity = ledger.merge("mixed", MetricKind.COUNTER, 2)
        ledger.merge("mixed", MetricKind.GAUGE, 5)

        entry = ledger.get(identity)
        assert entry.kind == MetricKind.COUNTER
        assert entry.value == 7

    def test_drain_for_flush_returns_snapshots(self, ledger):
        """Test drained entries are copies unaffected by later merges."""
        ledger.merge("reqs", MetricKind.COUNTER, 5)

        drained = list(ledger.drain_for_flush())
        ledger.merge("reqs", MetricKind.COUNTER, 5)

        assert len(drained) == 1
        identity, entry = drained[0]
        assert identity == MetricIdentity.of("reqs")
        assert entry.value == 5
        assert ledger.get(identity).value == 10

    def test_drain_for_flush_is_not_restartable(self, ledger):
        """Test the drain iterator is consumed once."""
        ledger.merge("a", MetricKind.GAUGE, 1)
        ledger.merge("b", MetricKind.GAUGE, 2)

        drained = ledger.drain_for_flush()

        assert len(list(drained)) == 2
        assert list(drained) == []

    def test_drain_for_flush_keeps_entries(self, ledger):
        """Test draining removes nothing."""
        ledger.merge("a", MetricKind.GAUGE, 1)

        list(ledger.drain_for_flush())

        assert len(ledger) == 1

    def test_drain_snapshot_ignores_entries_added_later(self, ledger):
        """Test identities inserted after the call are not yielded."""
        ledger.merge("a", MetricKind.GAUGE, 1)
        drained = ledger.drain_for_flush()
        ledger.merge("b", MetricKind.GAUGE, 2)

        assert [identity.name for identity, _ in drained] == ["a"]

    def test_reset_counter_preserves_entry(self, ledger):
        """Test reset zeroes the value but keeps kind and tags."""
        identity = ledger.merge("reqs", MetricKind.COUNTER, 42, {"route": "/a"})

        ledger.reset_counter(identity)

        entry = ledger.get(identity)
        assert entry.value == 0
        assert entry.kind == MetricKind.COUNTER
        assert entry.tags == {"route": "/a"}
        assert identity in ledger

    def test_reset_unknown_identity_raises(self, ledger):
        """Test resetting an identity never merged raises."""
        with pytest.raises(UnknownMetricError):
            ledger.reset_counter(MetricIdentity.of("missing"))

        with pytest.raises(KeyError):
            ledger.reset_counter(MetricIdentity.of("missing"))

    def test_counter_accumulates_again_after_reset(self, ledger):
        """Test deltas after a reset start from zero."""
        identity = ledger.merge("reqs", MetricKind.COUNTER, 9)
        ledger.reset_counter(identity)
        ledger.merge("reqs", MetricKind.COUNTER, 2)

        assert ledger.get(identity).value == 2

    def test_get_returns_copy(self, ledger):
        """Test callers cannot mutate ledger state through get."""
        identity = ledger.merge("a", MetricKind.GAUGE, 1, {"k": "v"})

        entry = ledger.get(identity)
        entry.value = 100
        entry.tags["k"] = "changed"

        assert ledger.get(identity).value == 1
        assert ledger.get(identity).tags == {"k": "v"}

    def test_get_missing_returns_none(self, ledger):
        """Test lookups for unknown identities."""
        assert ledger.get(MetricIdentity.of("nope")) is None
        assert ledger.lookup("nope", {"a": "b"}) is None

    def test_raw_kind_strings_are_normalized(self, ledger):
        """Test string kinds, including the increment alias, are stored as MetricKind."""
        identity = ledger.merge("reqs", "increment", 2)
        ledger.merge("reqs", "counter", 3)
        gauge_identity = ledger.merge("depth", "GAUGE", 4)

        entry = ledger.get(identity)
        assert entry.kind is MetricKind.COUNTER
        assert entry.value == 5
        assert ledger.get(gauge_identity).kind is MetricKind.GAUGE

    def test_unknown_kind_string_raises(self, ledger):
        """Test an unrecognised kind is rejected before anything is stored."""
        with pytest.raises(ValueError):
            ledger.merge("reqs", "histogram", 1)

        assert len(ledger) == 0
