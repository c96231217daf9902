"""
Shared fixtures for stats buffer tests.
"""

import pytest

from stats_buffer.aggregator import StatsAggregator
from stats_buffer.config import StatsSettings

from tests.doubles import RecordingTransport


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep STATS_* variables from leaking into settings and reset the singleton."""
    for var in ("STATS_ENV", "STATS_FLUSH_INTERVAL_MS", "STATS_PRODUCTION_ENV"):
        monkeypatch.delenv(var, raising=False)
    yield
    StatsAggregator.shutdown(flush=False)


@pytest.fixture
def settings():
    """Settings that ignore any local .env file."""
    return StatsSettings(_env_file=None)


@pytest.fixture
def transport():
    """Create a recording transport."""
    return RecordingTransport()


@pytest.fixture
def aggregator(transport):
    """Create an aggregator whose timer is never started."""
    return StatsAggregator(transport=transport, flush_interval_ms=60_000, environment="test")
