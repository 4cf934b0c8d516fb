"""Exceptions raised by the benchmark harness."""


class BenchmarkError(Exception):
    """Base class for failures that abort a benchmark sweep."""


class ExternalToolError(BenchmarkError):
    """Raised when the load generator cannot be run or its output is unusable."""

    def __init__(self, message: str, returncode: int | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class ReportParseError(BenchmarkError):
    """Raised when a number captured from the load generator report is invalid."""


class ConfigError(BenchmarkError, ValueError):
    """Raised when the benchmark configuration holds out of range values."""
