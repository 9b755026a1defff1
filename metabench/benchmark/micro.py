"""
Single-threaded microbenchmark: warmup followed by measured iterations.
"""

import logging
import time
from typing import Any, Callable, List, Optional

from .errors import BenchmarkExecutionError, ConfigurationError
from .statistics import Statistics

logger = logging.getLogger(__name__)

Operation = Callable[[], Any]
Hook = Optional[Callable[[], Any]]


class MicroBenchmark:
    """
    Times one operation over a fixed number of iterations.

    The operation runs ``warmup`` times with results discarded, then
    ``spin`` times with each call timed individually. Optional ``pre`` and
    ``post`` hooks run around every iteration and are never timed, which
    lets a benchmark create the object it is about to drop (or drop the
    object it just created) without polluting the measurement.

    Example:
        bench = MicroBenchmark(warmup=15, spin=100)
        stats = bench.run(client.get_all_databases)
        print(stats.mean)
    """

    def __init__(self, warmup: int = 15, spin: int = 100):
        if warmup < 0 or spin < 0:
            raise ConfigurationError(
                f"warmup and spin counts must be non-negative (got {warmup}, {spin})"
            )
        self.warmup = warmup
        self.spin = spin

    def run(
        self,
        operation: Operation,
        pre: Hook = None,
        post: Hook = None,
        name: str = "",
    ) -> Statistics:
        """
        Run the warmup and measured phases.

        Args:
            operation: Zero-argument callable to time
            pre: Untimed callable invoked before every iteration
            post: Untimed callable invoked after every iteration
            name: Benchmark name used in error reports

        Returns:
            Statistics over exactly ``spin`` samples

        Raises:
            BenchmarkExecutionError: If the operation or a hook fails
        """
        for i in range(self.warmup):
            self._iterate(operation, pre, post, name, "warmup", i)

        samples: List[int] = []
        for i in range(self.spin):
            samples.append(self._iterate(operation, pre, post, name, "measure", i))

        logger.debug(f"{name or 'benchmark'}: {len(samples)} samples after {self.warmup} warmup calls")
        return Statistics.from_samples(samples)

    @staticmethod
    def _iterate(
        operation: Operation,
        pre: Hook,
        post: Hook,
        name: str,
        phase: str,
        iteration: int,
    ) -> int:
        try:
            if pre is not None:
                pre()
            start = time.perf_counter_ns()
            operation()
            elapsed = time.perf_counter_ns() - start
            if post is not None:
                post()
        except Exception as e:
            raise BenchmarkExecutionError(name, phase, iteration, e) from e
        return elapsed

    def __repr__(self) -> str:
        return f"<MicroBenchmark(warmup={self.warmup}, spin={self.spin})>"
