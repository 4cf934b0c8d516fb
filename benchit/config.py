from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from typing import Iterator

from .exceptions import ConfigError

UINT16_MAX = 65_535
SETTLE_SECONDS = 5.0
DEFAULT_CHART_WIDTH = 100

# Query suffixes appended to /tasks, in the order they are benchmarked.
SCENARIOS: tuple[str, ...] = (
    "",
    "?summary=wherever&full=true&limit=10",
)

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address


@dataclass(frozen=True)
class Backend:
    """HTTP service under test and the process name it runs as."""

    name: str
    port: int
    process_name: str


@dataclass(frozen=True)
class BenchmarkConfig:
    """Sweep parameters, built once from the command line."""

    host: IPAddress = ipaddress.ip_address("127.0.0.1")
    max_concurrency: int = 128
    node_port: int = 3000
    actix_port: int = 3002
    monitor: bool = False
    duration_seconds: int = 60
    chart_width: int = DEFAULT_CHART_WIDTH
    wrk_binary: str = "wrk"
    settle_seconds: float = SETTLE_SECONDS

    def __post_init__(self) -> None:
        for field_name in ("max_concurrency", "node_port", "actix_port", "duration_seconds"):
            value = getattr(self, field_name)
            if not 0 <= value <= UINT16_MAX:
                raise ConfigError(f"{field_name} must be within 0..{UINT16_MAX}, got {value}")
        if self.chart_width <= 0:
            raise ConfigError(f"chart_width must be > 0, got {self.chart_width}")
        if self.settle_seconds < 0:
            raise ConfigError(f"settle_seconds must be >= 0, got {self.settle_seconds}")

    @property
    def monitor_delay_seconds(self) -> int:
        """Time to let the load settle before the sampling window opens."""
        return self.duration_seconds // 2

    def backends(self) -> tuple[Backend, Backend]:
        return (
            Backend(name="node", port=self.node_port, process_name="node"),
            Backend(name="actix", port=self.actix_port, process_name="actix"),
        )

    def base_url(self, backend: Backend) -> str:
        host = str(self.host)
        if self.host.version == 6:
            host = f"[{host}]"
        return f"http://{host}:{backend.port}/tasks"

    def target_url(self, backend: Backend, scenario: str) -> str:
        return f"{self.base_url(backend)}{scenario}"


def concurrency_levels(max_concurrency: int) -> Iterator[int]:
    """Yield 1, 2, 4, ... strictly below ``max_concurrency``."""

    level = 1
    while level < max_concurrency:
        yield level
        level *= 2
