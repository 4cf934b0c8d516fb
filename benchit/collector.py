from __future__ import annotations

from dataclasses import dataclass

import pandas as pd

from .monitor import ProcessesReport
from .report import WrkStats

FRAME_COLUMNS = [
    "scenario",
    "backend",
    "concurrency",
    "pg_cpu",
    "pg_mem",
    "node_cpu",
    "node_mem",
    "actix_cpu",
    "actix_mem",
    "latency_ms",
    "rps",
]


@dataclass(frozen=True)
class RunResult:
    """Outcome of one wrk run against one backend at one concurrency level."""

    scenario: str
    backend: str
    concurrency: int
    resources: ProcessesReport
    stats: WrkStats

    def key(self) -> tuple[str, int]:
        return (self.scenario, self.concurrency)


class ResultCollector:
    """Ordered results of a single scenario sweep.

    Entries must arrive in sweep order: one scenario, concurrency never
    decreasing. Chart grouping relies on that adjacency.
    """

    def __init__(self) -> None:
        self._results: list[RunResult] = []

    def __len__(self) -> int:
        return len(self._results)

    @property
    def results(self) -> tuple[RunResult, ...]:
        return tuple(self._results)

    def append(self, result: RunResult) -> None:
        if self._results:
            last = self._results[-1]
            if result.scenario != last.scenario:
                raise ValueError(
                    f"Result for scenario {result.scenario!r} appended to {last.scenario!r} sweep"
                )
            if result.concurrency < last.concurrency:
                raise ValueError(
                    f"Concurrency {result.concurrency} appended after {last.concurrency}"
                )
        self._results.append(result)

    def clear(self) -> None:
        self._results.clear()

    def build_dataframe(self) -> pd.DataFrame:
        if not self._results:
            return pd.DataFrame(columns=FRAME_COLUMNS)

        rows = []
        for result in self._results:
            resources = result.resources
            rows.append(
                {
                    "scenario": result.scenario,
                    "backend": result.backend,
                    "concurrency": result.concurrency,
                    "pg_cpu": resources.postgres.cpu_percent,
                    "pg_mem": resources.postgres.memory_bytes,
                    "node_cpu": resources.node.cpu_percent,
                    "node_mem": resources.node.memory_bytes,
                    "actix_cpu": resources.actix.cpu_percent,
                    "actix_mem": resources.actix.memory_bytes,
                    "latency_ms": result.stats.latency_ms,
                    "rps": result.stats.rps,
                }
            )
        return pd.DataFrame(rows, columns=FRAME_COLUMNS)

    def peak_summary(self) -> pd.DataFrame:
        """Best throughput and latency each backend reached in the sweep."""
        df = self.build_dataframe()
        if df.empty:
            return pd.DataFrame(columns=["backend", "max_rps", "min_latency_ms"])
        summary = df.groupby("backend", sort=False).agg(
            max_rps=("rps", "max"),
            min_latency_ms=("latency_ms", "min"),
        )
        return summary.reset_index()
