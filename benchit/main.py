from __future__ import annotations

import argparse
import asyncio
import ipaddress
import logging
import os
import sys

from .charts import format_header, format_row, render_charts
from .collector import ResultCollector, RunResult
from .config import (
    DEFAULT_CHART_WIDTH,
    SCENARIOS,
    UINT16_MAX,
    Backend,
    BenchmarkConfig,
    concurrency_levels,
)
from .exceptions import BenchmarkError
from .load import WrkRunner
from .monitor import ProcessesReport, ProcessMonitor
from .report import WrkReportParser

LOGGER = logging.getLogger("benchit")


def _uint16(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} is not an integer") from None
    if not 0 <= number <= UINT16_MAX:
        raise argparse.ArgumentTypeError(f"{number} is outside 0..{UINT16_MAX}")
    return number


def _ip_address(value: str):
    try:
        return ipaddress.ip_address(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} is not an IP address") from None


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} is not an integer") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"{number} must be > 0")
    return number


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Automation for running load tests and gathering stats. "
            "It uses wrk under the hood, make sure to have it in the PATH."
        ),
        add_help=False,
    )
    parser.add_argument("--help", action="help", help="Show this help message and exit")
    parser.add_argument(
        "-h",
        "--host",
        type=_ip_address,
        default=os.environ.get("BENCHIT_HOST", "127.0.0.1"),
        help="IP address of target host",
    )
    parser.add_argument(
        "-c",
        "--mc",
        dest="max_concurrency",
        type=_uint16,
        default=os.environ.get("BENCHIT_MAX_CONCURRENCY", "128"),
        help="Concurrency limit (exclusive)",
    )
    parser.add_argument(
        "-n",
        "--np",
        dest="node_port",
        type=_uint16,
        default=os.environ.get("BENCHIT_NODE_PORT", "3000"),
        help="Node port",
    )
    parser.add_argument(
        "-a",
        "--ap",
        dest="actix_port",
        type=_uint16,
        default=os.environ.get("BENCHIT_ACTIX_PORT", "3002"),
        help="Actix port",
    )
    parser.add_argument(
        "-m",
        "--monitor",
        action="store_true",
        help="Monitor local processes: node, actix and postgres",
    )
    parser.add_argument(
        "-t",
        "--time",
        dest="duration_seconds",
        type=_uint16,
        default=os.environ.get("BENCHIT_TIME", "60"),
        help="Measurement time in seconds",
    )
    parser.add_argument(
        "--width",
        dest="chart_width",
        type=_positive_int,
        default=os.environ.get("BENCHIT_CHART_WIDTH", str(DEFAULT_CHART_WIDTH)),
        help="Width of the ASCII bar charts in characters",
    )
    parser.add_argument(
        "--wrk",
        dest="wrk_binary",
        default=os.environ.get("BENCHIT_WRK", "wrk"),
        help="wrk executable to invoke",
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("BENCHIT_LOG_LEVEL", "INFO"),
        help="Logging level",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> BenchmarkConfig:
    return BenchmarkConfig(
        host=args.host,
        max_concurrency=args.max_concurrency,
        node_port=args.node_port,
        actix_port=args.actix_port,
        monitor=args.monitor,
        duration_seconds=args.duration_seconds,
        chart_width=args.chart_width,
        wrk_binary=args.wrk_binary,
    )


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


class BenchmarkHarness:
    """Sweeps every scenario and concurrency level against both backends."""

    def __init__(
        self,
        config: BenchmarkConfig,
        runner: WrkRunner | None = None,
        monitor: ProcessMonitor | None = None,
        parser: WrkReportParser | None = None,
    ) -> None:
        self._config = config
        self._backends = config.backends()
        self._runner = runner or WrkRunner(config.wrk_binary)
        self._monitor = monitor or ProcessMonitor(
            settle_seconds=config.settle_seconds,
            node_process=self._backends[0].process_name,
            actix_process=self._backends[1].process_name,
        )
        self._parser = parser or WrkReportParser()
        self._collector = ResultCollector()

    async def run(self) -> dict[str, tuple[RunResult, ...]]:
        """Run the full sweep and return the results of each scenario."""
        print(format_header())
        completed: dict[str, tuple[RunResult, ...]] = {}
        for scenario in SCENARIOS:
            completed[scenario] = await self.run_scenario(scenario)
        return completed

    async def run_scenario(self, scenario: str) -> tuple[RunResult, ...]:
        print(f"Starting test /tasks{scenario}")
        LOGGER.info("Starting scenario /tasks%s", scenario)

        for concurrency in concurrency_levels(self._config.max_concurrency):
            print(f"concurrent load = {concurrency}")
            for backend in self._backends:
                result = await self.measure(scenario, backend, concurrency)
                print(format_row(result))
                self._collector.append(result)

        results = self._collector.results
        for line in render_charts(results, self._config.chart_width):
            print(line)
        self._log_summary(scenario)
        self._collector.clear()
        return results

    async def measure(self, scenario: str, backend: Backend, concurrency: int) -> RunResult:
        url = self._config.target_url(backend, scenario)
        run = asyncio.ensure_future(
            self._runner.run(concurrency, url, self._config.duration_seconds)
        )
        try:
            resources = await self._sample_resources()
            output = await run
        except BaseException:
            run.cancel()
            await asyncio.gather(run, return_exceptions=True)
            raise

        return RunResult(
            scenario=scenario,
            backend=backend.name,
            concurrency=concurrency,
            resources=resources,
            stats=self._parser.parse(output),
        )

    async def _sample_resources(self) -> ProcessesReport:
        if not self._config.monitor:
            return ProcessesReport()
        await asyncio.sleep(self._config.monitor_delay_seconds)
        return await self._monitor.sample()

    def _log_summary(self, scenario: str) -> None:
        summary = self._collector.peak_summary()
        for row in summary.itertuples(index=False):
            LOGGER.info(
                "/tasks%s %s: peak %d rps, best latency %.2f ms",
                scenario,
                row.backend,
                row.max_rps,
                row.min_latency_ms,
            )


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)
    try:
        config = build_config(args)
    except BenchmarkError as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        return 1

    LOGGER.info(
        "Target host %s (node :%d, actix :%d), max concurrency %d, %ds per run, monitor=%s",
        config.host,
        config.node_port,
        config.actix_port,
        config.max_concurrency,
        config.duration_seconds,
        config.monitor,
    )

    harness = BenchmarkHarness(config)
    try:
        asyncio.run(harness.run())
    except BenchmarkError as exc:
        LOGGER.error("Benchmark aborted: %s", exc)
        return 1
    except KeyboardInterrupt:
        LOGGER.error("Benchmark interrupted")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
