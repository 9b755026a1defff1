"""
Registry of named benchmarks with pattern selection and sequential execution.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, TextIO

from .concurrent import ConcurrentRunner, WorkerFactory
from .errors import BenchmarkExecutionError, ConfigurationError, DuplicateNameError
from .micro import MicroBenchmark
from .reporter import DEFAULT_SEPARATOR, Reporter
from .statistics import Statistics, TimeScale

logger = logging.getLogger(__name__)

Hook = Optional[Callable[[], Any]]


def _as_patterns(patterns: Optional[Iterable[str]]) -> List[str]:
    """A single string is one pattern, not a sequence of characters."""
    if isinstance(patterns, str):
        return [patterns]
    return list(patterns or [])


@dataclass(frozen=True)
class BenchmarkEntry:
    """
    A registered benchmark.

    Sequential entries carry ``operation``; concurrent entries carry
    ``worker_factory`` and optionally their own total ``iterations``.
    ``pre``/``post`` run untimed around each sequential iteration,
    ``setup``/``teardown`` run untimed once around the whole entry.
    """
    name: str
    operation: Optional[Callable[[], Any]] = None
    worker_factory: Optional[WorkerFactory] = None
    iterations: Optional[int] = None
    pre: Hook = None
    post: Hook = None
    setup: Hook = None
    teardown: Hook = None

    @property
    def concurrent(self) -> bool:
        return self.worker_factory is not None

    def matches(self, patterns: Optional[Iterable[str]]) -> bool:
        """True if the name contains any pattern; no patterns match everything."""
        patterns = _as_patterns(patterns)
        if not patterns:
            return True
        return any(p in self.name for p in patterns)


class BenchmarkSuite:
    """
    Ordered collection of named benchmarks.

    Entries run one at a time in registration order. A failing entry is
    logged and left out of the result; the remaining entries still run.

    Example:
        suite = BenchmarkSuite(MicroBenchmark(warmup=5, spin=50))
        suite.add("listDatabases", client.get_all_databases)
        suite.add("getTable", lambda: client.get_table("db", "t"))
        result = suite.run_matching(["list"])     # {"listDatabases": Statistics}
        suite.display(sys.stdout)
    """

    def __init__(
        self,
        bench: Optional[MicroBenchmark] = None,
        threads: int = 2,
        scale: TimeScale = TimeScale.MILLISECONDS,
        sanitize: bool = False,
    ):
        if threads < 1:
            raise ConfigurationError(f"thread count must be at least 1 (got {threads})")
        self.bench = bench or MicroBenchmark()
        self.threads = threads
        self.scale = scale
        self.sanitize = sanitize

        self._entries: "OrderedDict[str, BenchmarkEntry]" = OrderedDict()
        self._result: Mapping[str, Statistics] = MappingProxyType({})
        self._failures: Dict[str, BenchmarkExecutionError] = {}

    # ==========================================================================
    # Registration
    # ==========================================================================

    def add(
        self,
        name: str,
        operation: Callable[[], Any],
        pre: Hook = None,
        post: Hook = None,
        setup: Hook = None,
        teardown: Hook = None,
    ) -> "BenchmarkSuite":
        """
        Register a sequential benchmark.

        Args:
            name: Unique benchmark name
            operation: Zero-argument callable to time
            pre: Untimed callable run before every iteration
            post: Untimed callable run after every iteration
            setup: Untimed callable run once before the first iteration
            teardown: Untimed callable run once after the last iteration,
                also when the benchmark failed

        Raises:
            DuplicateNameError: If ``name`` is already registered
        """
        return self._register(BenchmarkEntry(
            name=name,
            operation=operation,
            pre=pre,
            post=post,
            setup=setup,
            teardown=teardown,
        ))

    def add_concurrent(
        self,
        name: str,
        worker_factory: WorkerFactory,
        iterations: Optional[int] = None,
        setup: Hook = None,
        teardown: Hook = None,
    ) -> "BenchmarkSuite":
        """
        Register a benchmark executed by ConcurrentRunner.

        Args:
            name: Unique benchmark name
            worker_factory: Function(worker_index) returning an operation
                that takes the worker-local iteration index
            iterations: Total iterations across all workers
                (default: the MicroBenchmark spin count)
            setup: Untimed callable run once before the workers start
            teardown: Untimed callable run once after the workers finish

        Raises:
            DuplicateNameError: If ``name`` is already registered
            ConfigurationError: If ``iterations`` is negative
        """
        if iterations is not None and iterations < 0:
            raise ConfigurationError(f"iteration count must be non-negative (got {iterations})")
        return self._register(BenchmarkEntry(
            name=name,
            worker_factory=worker_factory,
            iterations=iterations,
            setup=setup,
            teardown=teardown,
        ))

    def _register(self, entry: BenchmarkEntry) -> "BenchmarkSuite":
        if entry.name in self._entries:
            raise DuplicateNameError(entry.name)
        self._entries[entry.name] = entry
        return self

    def get(self, name: str) -> BenchmarkEntry:
        return self._entries[name]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    # ==========================================================================
    # Selection and execution
    # ==========================================================================

    def list_matching(self, patterns: Optional[Iterable[str]] = None) -> List[str]:
        """Names of the entries selected by ``patterns``, in registration order."""
        patterns = _as_patterns(patterns)
        return [name for name, entry in self._entries.items() if entry.matches(patterns)]

    def run_matching(self, patterns: Optional[Iterable[str]] = None) -> Mapping[str, Statistics]:
        """
        Run every selected entry in registration order.

        Args:
            patterns: Substrings selecting entries; empty selects all

        Returns:
            Read-only mapping of benchmark name to Statistics, in execution
            order, without the entries that failed
        """
        patterns = _as_patterns(patterns)
        selected = [e for e in self._entries.values() if e.matches(patterns)]
        logger.info(f"Running {len(selected)} of {len(self._entries)} benchmarks")

        result: "OrderedDict[str, Statistics]" = OrderedDict()
        failures: Dict[str, BenchmarkExecutionError] = {}

        for entry in selected:
            logger.info(f"Running benchmark: {entry.name}")
            try:
                result[entry.name] = self._run_entry(entry)
            except BenchmarkExecutionError as e:
                logger.error(f"Benchmark '{entry.name}' failed: {e.cause!r}")
                failures[entry.name] = e

        self._result = MappingProxyType(result)
        self._failures = failures
        return self._result

    def _run_entry(self, entry: BenchmarkEntry) -> Statistics:
        failed = False
        try:
            if entry.setup is not None:
                self._call_hook(entry, entry.setup, "setup")
            if entry.concurrent:
                total = entry.iterations if entry.iterations is not None else self.bench.spin
                runner = ConcurrentRunner(total, self.threads, name=entry.name)
                return runner.run(entry.worker_factory)
            return self.bench.run(entry.operation, entry.pre, entry.post, name=entry.name)
        except BenchmarkExecutionError:
            failed = True
            raise
        finally:
            if entry.teardown is not None:
                try:
                    self._call_hook(entry, entry.teardown, "teardown")
                except BenchmarkExecutionError as e:
                    if not failed:
                        raise
                    # Keep the original failure, the teardown error is secondary
                    logger.error(f"Benchmark '{entry.name}' teardown failed: {e.cause!r}")

    @staticmethod
    def _call_hook(entry: BenchmarkEntry, hook: Callable[[], Any], phase: str) -> None:
        try:
            hook()
        except Exception as e:
            raise BenchmarkExecutionError(entry.name, phase, None, e) from e

    @property
    def failures(self) -> Mapping[str, BenchmarkExecutionError]:
        """Errors of the entries that failed in the most recent run."""
        return MappingProxyType(self._failures)

    def get_result(self) -> Mapping[str, Statistics]:
        """Raw (unsanitized) result of the most recent run."""
        return self._result

    # ==========================================================================
    # Display
    # ==========================================================================

    def set_scale(self, scale: TimeScale) -> "BenchmarkSuite":
        self.scale = scale
        return self

    def do_sanitize(self, enabled: bool) -> "BenchmarkSuite":
        self.sanitize = enabled
        return self

    def reporter(self) -> Reporter:
        return Reporter(scale=self.scale, sanitize=self.sanitize)

    def display(self, sink: TextIO) -> None:
        """Render the most recent result as a table."""
        self.reporter().display(self._result, sink)

    def display_csv(self, sink: TextIO, separator: str = DEFAULT_SEPARATOR) -> None:
        """Render the most recent result as separator-delimited rows."""
        self.reporter().display_csv(self._result, sink, separator)
