from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, Sequence

import psutil

from .config import SETTLE_SECONDS

LOGGER = logging.getLogger("benchit.monitor")

POSTGRES_PROCESS = "postgres"


@dataclass
class ProcessReport:
    """CPU and resident memory summed over a group of processes."""

    cpu_percent: float = 0.0
    memory_bytes: int = 0

    def __add__(self, other: ProcessReport) -> ProcessReport:
        return ProcessReport(
            cpu_percent=self.cpu_percent + other.cpu_percent,
            memory_bytes=self.memory_bytes + other.memory_bytes,
        )


@dataclass(frozen=True)
class ProcessesReport:
    postgres: ProcessReport = field(default_factory=ProcessReport)
    node: ProcessReport = field(default_factory=ProcessReport)
    actix: ProcessReport = field(default_factory=ProcessReport)


def summarise_group(processes: Iterable[psutil.Process], name: str) -> ProcessReport:
    """Sum usage of every process whose name contains ``name``.

    Processes that exit or become unreadable before they are read contribute
    nothing to the total.
    """
    report = ProcessReport()
    for process in processes:
        try:
            if name not in process.name():
                continue
            report += ProcessReport(
                cpu_percent=process.cpu_percent(),
                memory_bytes=process.memory_info().rss,
            )
        except psutil.Error as exc:
            LOGGER.debug("Skipping process %s: %s", getattr(process, "pid", "?"), exc)
    return report


class ProcessMonitor:
    """Samples the local postgres, node and actix processes over a settling window."""

    def __init__(
        self,
        settle_seconds: float = SETTLE_SECONDS,
        node_process: str = "node",
        actix_process: str = "actix",
    ) -> None:
        self._settle_seconds = settle_seconds
        self._node_process = node_process
        self._actix_process = actix_process

    def snapshot(self) -> list[psutil.Process]:
        """Current process table with CPU counters primed for the next read."""
        processes = []
        for process in psutil.process_iter(["name"]):
            try:
                process.cpu_percent(None)
            except psutil.Error:
                continue
            processes.append(process)
        return processes

    async def sample(self) -> ProcessesReport:
        processes = self.snapshot()
        await asyncio.sleep(self._settle_seconds)
        return self.summarise(processes)

    def summarise(self, processes: Sequence[psutil.Process]) -> ProcessesReport:
        return ProcessesReport(
            postgres=summarise_group(processes, POSTGRES_PROCESS),
            node=summarise_group(processes, self._node_process),
            actix=summarise_group(processes, self._actix_process),
        )
