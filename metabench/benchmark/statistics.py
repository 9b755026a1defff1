"""
Descriptive statistics over timing samples.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional, Sequence, Tuple

# Samples further than this many standard deviations from the mean are outliers
SANITIZE_MARGIN = 1.5


class TimeScale(Enum):
    """Display units, valued by the number of nanoseconds in one unit."""
    NANOSECONDS = 1
    MICROSECONDS = 1_000
    MILLISECONDS = 1_000_000
    SECONDS = 1_000_000_000

    @property
    def suffix(self) -> str:
        return {
            TimeScale.NANOSECONDS: "ns",
            TimeScale.MICROSECONDS: "us",
            TimeScale.MILLISECONDS: "ms",
            TimeScale.SECONDS: "s",
        }[self]

    def convert(self, nanos: float) -> float:
        """Convert a nanosecond value to this unit."""
        return nanos / self.value

    @classmethod
    def parse(cls, name: str) -> "TimeScale":
        """Look up a scale by enum name or suffix ("ms", "MILLISECONDS")."""
        key = name.strip()
        for scale in cls:
            if key.upper() == scale.name or key.lower() == scale.suffix:
                return scale
        raise ValueError(f"Unknown time scale: {name}")


@dataclass(frozen=True)
class Statistics:
    """
    Read-only aggregate over timing samples in nanoseconds.

    Always built with ``Statistics.from_samples``. The raw samples are kept
    in ``values`` in the order they were recorded so they can be exported
    after aggregation. An empty sample set yields ``count == 0`` with every
    derived field set to ``None``.
    """
    values: Tuple[int, ...] = field(default=(), repr=False)
    count: int = 0
    mean: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None
    p50: Optional[float] = None
    p90: Optional[float] = None
    p99: Optional[float] = None
    stddev: Optional[float] = None

    @classmethod
    def from_samples(cls, samples: Sequence[int]) -> "Statistics":
        values = tuple(samples)
        if not values:
            return cls()

        sorted_values = sorted(values)
        n = len(sorted_values)
        mean = sum(sorted_values) / n

        return cls(
            values=values,
            count=n,
            mean=mean,
            min=float(sorted_values[0]),
            max=float(sorted_values[-1]),
            p50=_percentile(sorted_values, 50),
            p90=_percentile(sorted_values, 90),
            p99=_percentile(sorted_values, 99),
            stddev=_stddev(sorted_values, mean),
        )

    @property
    def is_empty(self) -> bool:
        return self.count == 0

    def sanitized(self, margin: float = SANITIZE_MARGIN) -> "Statistics":
        """
        Derive statistics with outliers removed.

        A sample is an outlier when its distance from the mean exceeds
        ``margin`` standard deviations. The raw statistics are untouched. If
        every sample would be dropped the raw set is used as is.

        Args:
            margin: Outlier threshold in standard deviations

        Returns:
            New Statistics over the retained samples
        """
        if self.count < 2 or not self.stddev:
            return self

        limit = margin * self.stddev
        kept = [v for v in self.values if abs(v - self.mean) <= limit]
        if not kept or len(kept) == self.count:
            return self
        return Statistics.from_samples(kept)

    def scaled(self, scale: TimeScale) -> Dict[str, Optional[float]]:
        """Return the summary fields converted to ``scale``."""
        def conv(value: Optional[float]) -> Optional[float]:
            return None if value is None else scale.convert(value)

        return {
            "mean": conv(self.mean),
            "min": conv(self.min),
            "max": conv(self.max),
            "p50": conv(self.p50),
            "p90": conv(self.p90),
            "p99": conv(self.p99),
            "stddev": conv(self.stddev),
        }

    def to_dict(self, scale: TimeScale = TimeScale.MILLISECONDS) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        data: Dict[str, Any] = {"count": self.count, "unit": scale.suffix}
        data.update(self.scaled(scale))
        return data


def _percentile(sorted_data: List[int], percentile: int) -> float:
    """Nearest-rank percentile over already sorted data."""
    n = len(sorted_data)
    index = min(int(n * percentile / 100), n - 1)
    return float(sorted_data[index])


def _stddev(data: List[int], mean: float) -> float:
    """Sample standard deviation, 0.0 for a single value."""
    n = len(data)
    if n < 2:
        return 0.0
    return math.sqrt(sum((x - mean) ** 2 for x in data) / (n - 1))
