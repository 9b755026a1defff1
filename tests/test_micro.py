import pytest

from metabench.benchmark.errors import BenchmarkExecutionError, ConfigurationError
from metabench.benchmark.micro import MicroBenchmark


class TestMicroBenchmark:
    def test_call_counts(self, counter) -> None:
        op = counter()
        stats = MicroBenchmark(warmup=5, spin=20).run(op)
        assert op.calls == 25
        assert stats.count == 20
        assert all(v >= 0 for v in stats.values)

    def test_no_warmup(self, counter) -> None:
        op = counter()
        stats = MicroBenchmark(warmup=0, spin=3).run(op)
        assert op.calls == 3
        assert stats.count == 3

    def test_zero_spin_gives_empty_statistics(self, counter) -> None:
        op = counter()
        stats = MicroBenchmark(warmup=2, spin=0).run(op)
        assert op.calls == 2
        assert stats.is_empty

    def test_hooks_run_every_iteration(self, counter) -> None:
        op, pre, post = counter(), counter(), counter()
        MicroBenchmark(warmup=2, spin=3).run(op, pre=pre, post=post)
        assert pre.calls == post.calls == op.calls == 5

    def test_hook_order(self) -> None:
        events = []
        MicroBenchmark(warmup=0, spin=2).run(
            lambda: events.append("op"),
            pre=lambda: events.append("pre"),
            post=lambda: events.append("post"),
        )
        assert events == ["pre", "op", "post", "pre", "op", "post"]

    def test_failure_during_warmup(self, counter) -> None:
        error = KeyError("missing")
        with pytest.raises(BenchmarkExecutionError) as info:
            MicroBenchmark(warmup=3, spin=5).run(counter(fail_at=1, error=error), name="getTable")
        assert info.value.name == "getTable"
        assert info.value.phase == "warmup"
        assert info.value.iteration == 1
        assert info.value.cause is error
        assert "getTable" in str(info.value)

    def test_failure_during_measure(self, counter) -> None:
        with pytest.raises(BenchmarkExecutionError) as info:
            MicroBenchmark(warmup=2, spin=5).run(counter(fail_at=4))
        assert info.value.phase == "measure"
        assert info.value.iteration == 2

    def test_pre_failure_reported(self, counter) -> None:
        with pytest.raises(BenchmarkExecutionError):
            MicroBenchmark(warmup=0, spin=1).run(counter(), pre=counter(fail_at=0))

    def test_negative_counts_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            MicroBenchmark(warmup=-1, spin=10)
        with pytest.raises(ConfigurationError):
            MicroBenchmark(warmup=0, spin=-5)
