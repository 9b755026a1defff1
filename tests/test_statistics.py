import math

import pytest

from metabench.benchmark.statistics import SANITIZE_MARGIN, Statistics, TimeScale

MS = 1_000_000


class TestStatistics:
    def test_empty_samples(self) -> None:
        stats = Statistics.from_samples([])
        assert stats.is_empty
        assert stats.count == 0
        assert stats.mean is None
        assert stats.p99 is None
        assert stats.values == ()

    def test_single_sample(self) -> None:
        stats = Statistics.from_samples([42])
        assert stats.count == 1
        assert stats.mean == 42
        assert stats.min == stats.max == stats.p50 == stats.p99 == 42
        assert stats.stddev == 0.0

    def test_summary_fields(self) -> None:
        stats = Statistics.from_samples(list(range(1, 101)))
        assert stats.count == 100
        assert stats.mean == pytest.approx(50.5)
        assert stats.min == 1
        assert stats.max == 100
        # sorted[int(n * p / 100)]
        assert stats.p50 == 51
        assert stats.p90 == 91
        assert stats.p99 == 100

    def test_values_keep_recording_order(self) -> None:
        stats = Statistics.from_samples([3, 1, 2])
        assert stats.values == (3, 1, 2)
        assert stats.min == 1

    def test_sample_stddev(self) -> None:
        stats = Statistics.from_samples([2, 4, 4, 4, 5, 5, 7, 9])
        assert stats.stddev == pytest.approx(math.sqrt(32 / 7))

    def test_scaled_to_dict(self) -> None:
        stats = Statistics.from_samples([1 * MS, 3 * MS])
        data = stats.to_dict(TimeScale.MILLISECONDS)
        assert data["count"] == 2
        assert data["unit"] == "ms"
        assert data["mean"] == pytest.approx(2.0)
        assert Statistics().to_dict()["mean"] is None


class TestSanitize:
    def test_outlier_removed(self) -> None:
        stats = Statistics.from_samples([1 * MS, 1 * MS, 1 * MS, 1 * MS, 100 * MS])
        clean = stats.sanitized()
        assert clean.count == 4
        assert TimeScale.MILLISECONDS.convert(clean.mean) == pytest.approx(1.0)
        # Raw statistics are untouched
        assert stats.count == 5

    def test_never_empties(self) -> None:
        stats = Statistics.from_samples([1, 1000])
        assert stats.sanitized(margin=0.1).count == 2

    def test_constant_samples_unchanged(self) -> None:
        stats = Statistics.from_samples([5] * 10)
        assert stats.sanitized() is stats

    def test_empty_and_single(self) -> None:
        assert Statistics().sanitized().count == 0
        assert Statistics.from_samples([7]).sanitized().count == 1

    @pytest.mark.parametrize(
        "samples",
        [
            [10, 11, 12, 13, 500],
            [1, 2, 3, 4, 5, 6, 7, 8, 9, 10],
            [100, 100, 101, 99, 2000, 3000],
        ],
    )
    def test_never_grows(self, samples) -> None:
        stats = Statistics.from_samples(samples)
        clean = stats.sanitized(SANITIZE_MARGIN)
        assert 1 <= clean.count <= stats.count
        assert set(clean.values) <= set(stats.values)


class TestTimeScale:
    def test_convert(self) -> None:
        assert TimeScale.MICROSECONDS.convert(1500) == 1.5
        assert TimeScale.SECONDS.convert(2_000_000_000) == 2.0

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("ms", TimeScale.MILLISECONDS),
            ("MILLISECONDS", TimeScale.MILLISECONDS),
            ("us", TimeScale.MICROSECONDS),
            ("ns", TimeScale.NANOSECONDS),
            ("s", TimeScale.SECONDS),
        ],
    )
    def test_parse(self, name, expected) -> None:
        assert TimeScale.parse(name) is expected

    def test_parse_unknown(self) -> None:
        with pytest.raises(ValueError):
            TimeScale.parse("minutes")
