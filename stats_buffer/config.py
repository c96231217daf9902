"""
Configuration for the stats buffer.

Settings are read from ``STATS_*`` environment variables (or a ``.env``
file) once, when the aggregator is initialized.
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError


DEFAULT_FLUSH_INTERVAL_MS = 10 * 60 * 1000


class StatsSettings(BaseSettings):
    """Stats buffer settings."""

    model_config = SettingsConfigDict(
        env_prefix="STATS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment designator; empty disables metrics collection
    env: Optional[str] = Field(default=None)
    production_env: str = Field(default="production")
    flush_interval_ms: int = Field(default=DEFAULT_FLUSH_INTERVAL_MS)
    log_level: str = Field(default="info")
    configure_logging: bool = Field(default=False)

    # StatsD transport
    statsd_host: str = Field(default="localhost")
    statsd_port: int = Field(default=8125)
    statsd_socket_path: str = Field(default="/var/run/datadog/dsd.socket")
    statsd_namespace: Optional[str] = Field(default=None)

    @field_validator("env", "statsd_namespace", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def flush_interval_seconds(self) -> float:
        return self.flush_interval_ms / 1000.0


def validate_flush_interval(flush_interval_ms: int) -> int:
    """Reject non-positive flush intervals."""
    if not isinstance(flush_interval_ms, (int, float)) or isinstance(flush_interval_ms, bool):
        raise ConfigurationError(
            "Flush interval must be a number of milliseconds",
            {"flush_interval_ms": flush_interval_ms}
        )
    interval = int(flush_interval_ms)
    if interval <= 0:
        raise ConfigurationError(
            "Flush interval must be at least one millisecond",
            {"flush_interval_ms": flush_interval_ms}
        )
    return interval


def get_settings(**overrides) -> StatsSettings:
    """Load settings from the environment, applying explicit overrides."""
    return StatsSettings(**overrides)
