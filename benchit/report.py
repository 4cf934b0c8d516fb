from __future__ import annotations

import re
from dataclasses import dataclass

from .exceptions import ExternalToolError, ReportParseError

LATENCY_RE = re.compile(r"Latency\s+(\d+(?:\.\d+)?)([A-Za-z]+)")
RPS_RE = re.compile(r"Requests/sec:\s+(\d+)")

# Scale factors into milliseconds; any other unit is already ms.
LATENCY_UNITS = {
    "s": 1000.0,
    "us": 0.001,
}


@dataclass(frozen=True)
class WrkStats:
    """Latency and throughput read from one wrk report. Zeros mean nothing matched."""

    latency_ms: float = 0.0
    rps: int = 0


class WrkReportParser:
    """Extracts :class:`WrkStats` from the text report printed by wrk."""

    def parse(self, output: bytes) -> WrkStats:
        try:
            text = output.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ExternalToolError(f"wrk output is not valid UTF-8: {exc}") from exc

        latency_ms = 0.0
        rps = 0
        for line in text.splitlines():
            latency = LATENCY_RE.search(line)
            if latency:
                value, unit = latency.groups()
                latency_ms = _to_number(float, value) * LATENCY_UNITS.get(unit, 1.0)
            throughput = RPS_RE.search(line)
            if throughput:
                rps = _to_number(int, throughput.group(1))
        return WrkStats(latency_ms=latency_ms, rps=rps)


def _to_number(kind: type[int] | type[float], raw: str) -> int | float:
    """Convert a captured field, guarding against matches the regexes should never yield."""
    try:
        return kind(raw)
    except ValueError as exc:
        raise ReportParseError(f"Cannot convert {raw!r} from wrk report") from exc
