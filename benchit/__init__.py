"""
Comparative load-testing harness for the node and actix task services.

This package drives wrk against both backends across a sweep of concurrency
levels and request shapes, optionally samples local postgres/node/actix
process usage, and prints a tab-separated table plus ASCII bar charts
comparing latency and throughput.
"""

from .main import main

__all__ = ["main"]
