"""
Multi-threaded benchmark runner measuring operations under contention.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, List, Optional

from .errors import ConcurrentRunError, ConfigurationError
from .statistics import Statistics

logger = logging.getLogger(__name__)

# Called once per worker with the worker index; returns an operation that
# takes the worker-local iteration index.
WorkerOperation = Callable[[int], Any]
WorkerFactory = Callable[[int], WorkerOperation]


class _WorkerFailure(Exception):
    """Carries the failing worker's position back through the future."""

    def __init__(self, worker: int, iteration: Optional[int], cause: BaseException):
        super().__init__(str(cause))
        self.worker = worker
        self.iteration = iteration
        self.cause = cause


class ConcurrentRunner:
    """
    Runs a fixed number of iterations across a fixed pool of threads.

    Iterations are split statically between workers, earliest workers
    taking the remainder. Every worker builds its own operation through the
    factory (outside of the timed region) and waits until every worker is
    ready, so all of them run at the same time on their own thread. Each
    then runs its share sequentially, timing each call. Samples of all
    workers are merged into one Statistics object.

    A (worker index, iteration index) pair is unique across the whole run,
    so operations creating keyed objects can derive collision-free keys
    from it.

    Example:
        runner = ConcurrentRunner(total_iterations=10, threads=3)
        runner.partition()        # [4, 3, 3]
        stats = runner.run(lambda w: (lambda i: client.add_partition(w, i)))
    """

    def __init__(self, total_iterations: int, threads: int, name: str = ""):
        if total_iterations < 0:
            raise ConfigurationError(f"iteration count must be non-negative (got {total_iterations})")
        if threads < 1:
            raise ConfigurationError(f"thread count must be at least 1 (got {threads})")
        self.total_iterations = total_iterations
        self.threads = threads
        self.name = name

    def partition(self) -> List[int]:
        """Number of iterations assigned to each worker."""
        base, remainder = divmod(self.total_iterations, self.threads)
        return [base + (1 if i < remainder else 0) for i in range(self.threads)]

    def run(self, worker_factory: WorkerFactory) -> Statistics:
        """
        Execute the run and merge samples.

        Args:
            worker_factory: Function(worker_index) returning the operation
                the worker times; the operation receives the local
                iteration index

        Returns:
            Statistics over exactly ``total_iterations`` samples

        Raises:
            ConcurrentRunError: If any worker fails. Raised only after every
                worker has finished; no samples of the run are kept.
        """
        shares = self.partition()
        logger.info(
            f"{self.name or 'concurrent run'}: {self.total_iterations} iterations "
            f"on {self.threads} threads {shares}"
        )

        merged: List[int] = []
        first_failure: Optional[_WorkerFailure] = None

        # Workers wait on this until all of them exist, so no pool thread
        # runs two workers
        start_barrier = threading.Barrier(self.threads)

        with ThreadPoolExecutor(max_workers=self.threads) as executor:
            futures = [
                executor.submit(self._work, worker, share, worker_factory, start_barrier)
                for worker, share in enumerate(shares)
            ]

            for future in as_completed(futures):
                try:
                    merged.extend(future.result())
                except _WorkerFailure as failure:
                    logger.error(
                        f"{self.name or 'concurrent run'}: worker {failure.worker} failed "
                        f"at iteration {failure.iteration}: {failure.cause!r}"
                    )
                    if first_failure is None:
                        first_failure = failure

        if first_failure is not None:
            raise ConcurrentRunError(
                self.name,
                first_failure.worker,
                first_failure.iteration,
                first_failure.cause,
            ) from first_failure.cause

        return Statistics.from_samples(merged)

    @staticmethod
    def _work(
        worker: int,
        share: int,
        worker_factory: WorkerFactory,
        start_barrier: threading.Barrier,
    ) -> List[int]:
        try:
            operation = worker_factory(worker)
        except Exception as e:
            start_barrier.abort()
            raise _WorkerFailure(worker, None, e) from e

        try:
            start_barrier.wait()
        except threading.BrokenBarrierError:
            # Another worker failed to start; it reports the failure
            return []

        samples: List[int] = []
        for i in range(share):
            try:
                start = time.perf_counter_ns()
                operation(i)
                samples.append(time.perf_counter_ns() - start)
            except Exception as e:
                raise _WorkerFailure(worker, i, e) from e
        return samples
