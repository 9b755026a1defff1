"""
Benchmark execution and reporting package.
"""

from .errors import (
    BenchmarkError,
    BenchmarkExecutionError,
    ConcurrentRunError,
    ConfigurationError,
    DuplicateNameError,
    ReportIOError,
)
from .statistics import Statistics, TimeScale
from .micro import MicroBenchmark
from .concurrent import ConcurrentRunner
from .suite import BenchmarkEntry, BenchmarkSuite
from .reporter import Reporter

__all__ = [
    "BenchmarkError",
    "BenchmarkExecutionError",
    "ConcurrentRunError",
    "ConfigurationError",
    "DuplicateNameError",
    "ReportIOError",
    "Statistics",
    "TimeScale",
    "MicroBenchmark",
    "ConcurrentRunner",
    "BenchmarkEntry",
    "BenchmarkSuite",
    "Reporter",
]
