from __future__ import annotations

import dataclasses
import itertools
import logging
from typing import Callable, Iterator, Sequence

import pandas as pd

from .collector import RunResult

LOGGER = logging.getLogger("benchit.charts")

MEBIBYTE = 1024 * 1024

TABLE_HEADER = (
    "Target",
    "Concur",
    "PG cpu",
    "mem",
    "ND cpu",
    "mem",
    "AX cpu",
    "mem",
    "lat ms",
    "rps",
)


def format_header() -> str:
    return ",\t".join(TABLE_HEADER)


def format_row(result: RunResult) -> str:
    """Table row for one run: cpu as a 0..1 share, memory in whole MiB."""
    cells = [f"{result.backend:5}", str(result.concurrency)]
    for usage in (result.resources.postgres, result.resources.node, result.resources.actix):
        cells.append(f"{usage.cpu_percent / 100:.2f}")
        cells.append(f"{usage.memory_bytes // MEBIBYTE:3}")
    cells.append(f"{result.stats.latency_ms:.2f}")
    cells.append(str(result.stats.rps))
    return ",\t".join(cells)


def bars(n: int) -> str:
    return "*" * n


def bar_length(value: float, width: int, maximum: float) -> int:
    """Scaled bar length, never shorter than one character."""
    if maximum <= 0:
        return 1
    # Truncated, not rounded: the maximum maps to width + 1 and zero to 1.
    return int(value * width / maximum) + 1


def group_results(results: Sequence[RunResult]) -> Iterator[tuple[tuple[str, int], list[RunResult]]]:
    """Group consecutive results sharing a (scenario, concurrency) key.

    ``results`` must already be in sweep order; non-adjacent entries with the
    same key end up in separate groups.
    """
    for key, group in itertools.groupby(results, key=RunResult.key):
        yield key, list(group)


def global_maxima(results: Sequence[RunResult]) -> tuple[float, int]:
    """Largest latency and rps across every result, shared by all charts of a scenario."""
    stats = pd.DataFrame([dataclasses.asdict(result.stats) for result in results])
    if stats.empty:
        return 0.0, 0
    return float(stats["latency_ms"].max()), int(stats["rps"].max())


def render_charts(results: Sequence[RunResult], width: int) -> list[str]:
    if not results:
        LOGGER.info("No results to chart")
        return []

    max_latency, max_rps = global_maxima(results)
    lines = ["", "Latency in ms (lower is better)"]
    lines.extend(_render_chart(results, width, max_latency, lambda r: r.stats.latency_ms))
    lines.extend(["", "Requests per second (higher is better)"])
    lines.extend(_render_chart(results, width, max_rps, lambda r: r.stats.rps))
    return lines


def _render_chart(
    results: Sequence[RunResult],
    width: int,
    maximum: float,
    value: Callable[[RunResult], float],
) -> Iterator[str]:
    for (_scenario, concurrency), group in group_results(results):
        yield ""
        yield f"concurrent load {concurrency}"
        for result in group:
            bar = bars(bar_length(value(result), width, maximum))
            yield f"{result.backend:6} |{bar:<{width + 2}}|"
