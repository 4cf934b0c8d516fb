"""Shared fixtures for the benchmark harness tests."""

from unittest.mock import MagicMock

import psutil
import pytest

from benchit.collector import RunResult
from benchit.monitor import ProcessesReport
from benchit.report import WrkStats

WRK_OUTPUT = b"""Running 10s test @ http://127.0.0.1:3000/tasks
  2 threads and 10 connections
  Thread Stats   Avg      Stdev     Max   +/- Stdev
    Latency    12.34ms    3.21ms  45.67ms   75.00%
    Req/Sec   405.12     30.11   480.00     70.00%
  8123 requests in 10.01s, 1.23MB read
Requests/sec:   1234.56
Transfer/sec:    125.78KB
"""


@pytest.fixture
def wrk_output():
    """Report as printed by a successful wrk run."""
    return WRK_OUTPUT


@pytest.fixture
def make_result():
    """Factory building RunResult entries with sensible defaults."""

    def _make(scenario="", backend="node", concurrency=1, latency_ms=0.0, rps=0, resources=None):
        return RunResult(
            scenario=scenario,
            backend=backend,
            concurrency=concurrency,
            resources=resources or ProcessesReport(),
            stats=WrkStats(latency_ms=latency_ms, rps=rps),
        )

    return _make


@pytest.fixture
def make_process():
    """Factory building psutil.Process look-alikes."""

    def _make(name, cpu=0.0, rss=0, pid=1, error=None):
        process = MagicMock(spec=psutil.Process)
        process.pid = pid
        process.name.return_value = name
        if error is not None:
            process.cpu_percent.side_effect = error
            process.memory_info.side_effect = error
        else:
            process.cpu_percent.return_value = cpu
            process.memory_info.return_value = MagicMock(rss=rss)
        return process

    return _make
