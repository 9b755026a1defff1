import threading
import time

import pytest

from metabench.benchmark.concurrent import ConcurrentRunner
from metabench.benchmark.errors import (
    BenchmarkExecutionError,
    ConcurrentRunError,
    ConfigurationError,
)


def recording_factory(seen, lock):
    def factory(worker):
        def operation(iteration):
            with lock:
                seen.append((worker, iteration))
        return operation
    return factory


class TestPartition:
    def test_remainder_goes_to_earliest_workers(self) -> None:
        assert ConcurrentRunner(10, 3).partition() == [4, 3, 3]

    def test_even_split(self) -> None:
        assert ConcurrentRunner(8, 4).partition() == [2, 2, 2, 2]

    def test_more_threads_than_iterations(self) -> None:
        assert ConcurrentRunner(2, 4).partition() == [1, 1, 0, 0]

    def test_invalid_counts(self) -> None:
        with pytest.raises(ConfigurationError):
            ConcurrentRunner(10, 0)
        with pytest.raises(ConfigurationError):
            ConcurrentRunner(-1, 2)


class TestConcurrentRun:
    def test_ten_iterations_on_three_threads(self) -> None:
        seen, lock = [], threading.Lock()
        stats = ConcurrentRunner(10, 3).run(recording_factory(seen, lock))
        assert stats.count == 10
        per_worker = {w: sum(1 for s, _ in seen if s == w) for w in range(3)}
        assert per_worker == {0: 4, 1: 3, 2: 3}

    @pytest.mark.parametrize("threads", range(1, 9))
    def test_sample_count_matches_iterations(self, threads) -> None:
        seen, lock = [], threading.Lock()
        stats = ConcurrentRunner(8, threads).run(recording_factory(seen, lock))
        assert stats.count == 8
        assert len(seen) == 8

    def test_keys_are_distinct(self) -> None:
        seen, lock = [], threading.Lock()
        ConcurrentRunner(25, 4).run(recording_factory(seen, lock))
        assert len(set(seen)) == 25

    def test_factory_called_once_per_worker(self) -> None:
        workers, lock = [], threading.Lock()

        def factory(worker):
            with lock:
                workers.append(worker)
            return lambda i: None

        ConcurrentRunner(6, 3).run(factory)
        assert sorted(workers) == [0, 1, 2]

    def test_zero_iterations(self) -> None:
        stats = ConcurrentRunner(0, 2).run(lambda w: (lambda i: None))
        assert stats.is_empty

    def test_failure_waits_for_all_workers(self) -> None:
        finished, lock = [], threading.Lock()

        def factory(worker):
            def operation(iteration):
                if worker == 0:
                    raise RuntimeError("worker zero broke")
                time.sleep(0.001)
                if iteration == 4:
                    with lock:
                        finished.append(worker)
            return operation

        with pytest.raises(ConcurrentRunError) as info:
            ConcurrentRunner(15, 3, name="concurrentPartitionAdd#3").run(factory)

        assert sorted(finished) == [1, 2]
        error = info.value
        assert isinstance(error, BenchmarkExecutionError)
        assert error.name == "concurrentPartitionAdd#3"
        assert error.worker == 0
        assert error.iteration == 0
        assert isinstance(error.cause, RuntimeError)

    def test_factory_failure(self) -> None:
        def factory(worker):
            raise ConnectionError("refused")

        with pytest.raises(ConcurrentRunError) as info:
            ConcurrentRunner(4, 2).run(factory)
        assert info.value.iteration is None
        assert isinstance(info.value.cause, ConnectionError)


class TestParallelism:
    def test_each_worker_on_its_own_thread(self) -> None:
        idents, lock = {}, threading.Lock()

        def factory(worker):
            def operation(iteration):
                with lock:
                    idents.setdefault(worker, set()).add(threading.get_ident())
            return operation

        for _ in range(20):
            idents.clear()
            ConcurrentRunner(8, 8).run(factory)
            assert len(idents) == 8
            assert all(len(s) == 1 for s in idents.values())
            assert len(set.union(*idents.values())) == 8

    def test_workers_overlap(self) -> None:
        state = {"active": 0, "peak": 0}
        lock = threading.Lock()

        def factory(worker):
            def operation(iteration):
                with lock:
                    state["active"] += 1
                    state["peak"] = max(state["peak"], state["active"])
                time.sleep(0.005)
                with lock:
                    state["active"] -= 1
            return operation

        ConcurrentRunner(40, 4).run(factory)
        assert state["peak"] > 1

    def test_one_factory_failure_releases_waiting_workers(self) -> None:
        def factory(worker):
            if worker == 2:
                raise ConnectionError("refused")
            return lambda i: None

        with pytest.raises(ConcurrentRunError) as info:
            ConcurrentRunner(9, 3).run(factory)
        assert info.value.worker == 2
        assert info.value.iteration is None
