"""
Statistics reducer: turns a trial set into a read-only Summary.

Percentiles use the nearest-rank method (index into the sorted samples,
no interpolation), so for small batches p95 and p99 may equal p50 or max.
"""

import math
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from instrumentation.timing import NS_PER_SECOND, ns_to_ms, ns_to_us

from .errors import InvalidConfiguration
from .sampler import TrialSet

PERCENTILES = (0.50, 0.95, 0.99)


def nearest_rank(sorted_samples: Sequence[int], p: float) -> int:
    """Value at index floor(count * p), clamped to the sample range."""
    count = len(sorted_samples)
    if count == 0:
        raise InvalidConfiguration("Cannot take a percentile of an empty trial set")
    index = min(max(math.floor(count * p), 0), count - 1)
    return sorted_samples[index]


@dataclass(frozen=True)
class Summary:
    """Statistical summary of one trial set. All durations in nanoseconds."""

    label: str
    count: int
    total_elapsed_ns: int
    sum_samples_ns: int
    min_ns: int
    max_ns: int
    mean_ns: float
    p50_ns: int
    p95_ns: int
    p99_ns: int
    throughput_ops_per_sec: Optional[float]

    @property
    def mean_ms(self) -> float:
        return ns_to_ms(self.mean_ns)

    @property
    def total_elapsed_ms(self) -> float:
        return ns_to_ms(self.total_elapsed_ns)

    def to_rows(self) -> list[tuple[str, Any]]:
        """Ordered (metric, value) pairs for table rendering."""
        throughput = (
            round(self.throughput_ops_per_sec, 1)
            if self.throughput_ops_per_sec is not None
            else "undefined"
        )
        return [
            ("Trials", self.count),
            ("Total Duration (ms)", round(ns_to_ms(self.total_elapsed_ns), 3)),
            ("Sum of Samples (ms)", round(ns_to_ms(self.sum_samples_ns), 3)),
            ("Average (ms)", round(ns_to_ms(self.mean_ns), 3)),
            ("Average (μs)", round(ns_to_us(self.mean_ns), 1)),
            ("Minimum (ms)", round(ns_to_ms(self.min_ns), 3)),
            ("Maximum (ms)", round(ns_to_ms(self.max_ns), 3)),
            ("50th Percentile (ms)", round(ns_to_ms(self.p50_ns), 3)),
            ("95th Percentile (ms)", round(ns_to_ms(self.p95_ns), 3)),
            ("99th Percentile (ms)", round(ns_to_ms(self.p99_ns), 3)),
            ("Operations per Second", throughput),
        ]

    def to_record(self) -> dict:
        """Flat key/value record for log ingestion."""
        return {
            "label": self.label,
            "count": self.count,
            "total_elapsed_ns": self.total_elapsed_ns,
            "sum_samples_ns": self.sum_samples_ns,
            "min_ns": self.min_ns,
            "max_ns": self.max_ns,
            "mean_ns": self.mean_ns,
            "p50_ns": self.p50_ns,
            "p95_ns": self.p95_ns,
            "p99_ns": self.p99_ns,
            "throughput_ops_per_sec": self.throughput_ops_per_sec,
            "mean_ms": round(ns_to_ms(self.mean_ns), 3),
            "p95_ms": round(ns_to_ms(self.p95_ns), 3),
        }


def summarize(trial_set: TrialSet) -> Summary:
    """Reduce a trial set to its Summary."""
    samples = trial_set.samples
    count = len(samples)
    if count == 0:
        raise InvalidConfiguration(f"{trial_set.label}: trial set is empty")

    ordered = sorted(samples)
    total = sum(ordered)
    elapsed = trial_set.total_elapsed_ns
    p50, p95, p99 = (nearest_rank(ordered, p) for p in PERCENTILES)

    return Summary(
        label=trial_set.label,
        count=count,
        total_elapsed_ns=elapsed,
        sum_samples_ns=total,
        min_ns=ordered[0],
        max_ns=ordered[-1],
        mean_ns=total / count,
        p50_ns=p50,
        p95_ns=p95,
        p99_ns=p99,
        throughput_ops_per_sec=count / (elapsed / NS_PER_SECOND) if elapsed > 0 else None,
    )
