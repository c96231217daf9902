"""
StatsD transport for the stats buffer.
"""

from enum import Enum
from typing import List, Mapping, Optional, Protocol

from datadog.dogstatsd import DogStatsd

from .config import StatsSettings
from .errors import TransportError
from .logging import get_logger
from .models import Number


class TransportMode(str, Enum):
    """How metrics leave the process."""
    UDS = "uds"
    UDP = "udp"


class MetricsTransport(Protocol):
    """Sink consumed by the aggregator's flush cycle."""

    def emit_gauge(self, name: str, value: Number, tags: Mapping[str, str]) -> None:
        ...

    def emit_counter_delta(self, name: str, delta: Number, tags: Mapping[str, str]) -> None:
        ...

    def close(self) -> None:
        ...


def select_transport_mode(environment: Optional[str], production_env: str = "production") -> TransportMode:
    """Production talks to the local agent socket; anything else uses UDP."""
    if environment == production_env:
        return TransportMode.UDS
    return TransportMode.UDP


def format_tags(tags: Optional[Mapping[str, str]]) -> List[str]:
    """Render a tag mapping as sorted ``key:value`` strings."""
    if not tags:
        return []
    return [f"{k}:{v}" for k, v in sorted(tags.items())]


class DogStatsdTransport:
    """Sends gauges and counter deltas through a DogStatsD client."""

    def __init__(
        self,
        mode: TransportMode = TransportMode.UDP,
        host: str = "localhost",
        port: int = 8125,
        socket_path: Optional[str] = None,
        namespace: Optional[str] = None,
        client: Optional[DogStatsd] = None
    ):
        self.mode = mode
        self.logger = get_logger("stats_buffer.transport")

        if client is not None:
            self.client = client
        elif mode == TransportMode.UDS:
            if not socket_path:
                raise TransportError("dogstatsd", "UDS mode requires a socket path")
            self.client = DogStatsd(socket_path=socket_path, namespace=namespace)
        else:
            self.client = DogStatsd(host=host, port=port, namespace=namespace)

        self.logger.debug(
            "DogStatsD transport created",
            mode=mode.value,
            host=host if mode == TransportMode.UDP else None,
            port=port if mode == TransportMode.UDP else None,
            socket_path=socket_path if mode == TransportMode.UDS else None
        )

    def emit_gauge(self, name: str, value: Number, tags: Mapping[str, str]) -> None:
        try:
            self.client.gauge(name, value, tags=format_tags(tags))
        except Exception as e:
            raise TransportError("dogstatsd", f"gauge {name} failed: {e}") from e

    def emit_counter_delta(self, name: str, delta: Number, tags: Mapping[str, str]) -> None:
        try:
            self.client.increment(name, delta, tags=format_tags(tags))
        except Exception as e:
            raise TransportError("dogstatsd", f"increment {name} failed: {e}") from e

    def close(self) -> None:
        try:
            self.client.close_socket()
        except OSError as e:
            self.logger.warning("Error closing DogStatsD socket", error=str(e))


def build_transport(settings: StatsSettings, environment: Optional[str]) -> DogStatsdTransport:
    """Create the transport for an environment designator."""
    mode = select_transport_mode(environment, settings.production_env)
    return DogStatsdTransport(
        mode=mode,
        host=settings.statsd_host,
        port=settings.statsd_port,
        socket_path=settings.statsd_socket_path,
        namespace=settings.statsd_namespace
    )
