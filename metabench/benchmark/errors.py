"""
Exceptions raised by the benchmark engine.
"""

from typing import Optional


class BenchmarkError(Exception):
    """Base exception for benchmark harness errors."""
    pass


class ConfigurationError(BenchmarkError):
    """Raised when counts, scales or separators are invalid."""
    pass


class DuplicateNameError(BenchmarkError):
    """Raised when a benchmark name is registered twice in one suite."""

    def __init__(self, name: str):
        super().__init__(f"Benchmark '{name}' is already registered")
        self.name = name


class BenchmarkExecutionError(BenchmarkError):
    """
    Wraps a failure raised by a benchmark operation.

    Attributes:
        name: Benchmark name (empty when the runner was not given one)
        phase: Phase in which the failure happened ("warmup", "measure", ...)
        iteration: Iteration index within the phase, if known
        cause: The original exception
    """

    def __init__(
        self,
        name: str,
        phase: str,
        iteration: Optional[int],
        cause: BaseException,
    ):
        self.name = name
        self.phase = phase
        self.iteration = iteration
        self.cause = cause
        where = f"{phase} iteration {iteration}" if iteration is not None else phase
        label = name or "<unnamed>"
        super().__init__(f"{label}: failed during {where}: {cause!r}")


class ConcurrentRunError(BenchmarkExecutionError):
    """Raised when a worker of a concurrent run fails; the whole run is discarded."""

    def __init__(
        self,
        name: str,
        worker: int,
        iteration: Optional[int],
        cause: BaseException,
    ):
        self.worker = worker
        super().__init__(name, f"worker {worker}", iteration, cause)


class ReportIOError(BenchmarkError):
    """Raised when report or raw-sample output cannot be written."""
    pass
