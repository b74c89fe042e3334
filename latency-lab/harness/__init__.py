"""
Benchmark harness for latency experiments.

Provides sampling, statistics, comparison, orchestration and reporting.
"""

from .errors import (
    BenchmarkError,
    InvalidConfiguration,
    ProviderUnavailable,
    SampleFailure,
)

from .sampler import (
    ColdStartResult,
    Operation,
    Sampler,
    TrialSet,
)

from .stats import (
    Summary,
    nearest_rank,
    summarize,
)

from .compare import (
    ColdStartOverhead,
    ComparisonResult,
    Insight,
    InsightThresholds,
    MetricComparison,
    Polarity,
    UNDEFINED,
    Verdict,
    cold_start_overhead,
    compare_cold_starts,
    compare_summaries,
    make_thresholds,
)

from .runner import (
    BenchmarkConfig,
    BenchmarkResult,
    BenchmarkRunner,
    ComparisonReport,
)

from .reporter import (
    ChartReporter,
    ConsoleReporter,
    JSONReporter,
)

__all__ = [
    # Errors
    "BenchmarkError",
    "InvalidConfiguration",
    "ProviderUnavailable",
    "SampleFailure",
    # Sampling
    "ColdStartResult",
    "Operation",
    "Sampler",
    "TrialSet",
    # Statistics
    "Summary",
    "nearest_rank",
    "summarize",
    # Comparison
    "ColdStartOverhead",
    "ComparisonResult",
    "Insight",
    "InsightThresholds",
    "MetricComparison",
    "Polarity",
    "UNDEFINED",
    "Verdict",
    "cold_start_overhead",
    "compare_cold_starts",
    "compare_summaries",
    "make_thresholds",
    # Runner
    "BenchmarkConfig",
    "BenchmarkResult",
    "BenchmarkRunner",
    "ComparisonReport",
    # Reporter
    "ChartReporter",
    "ConsoleReporter",
    "JSONReporter",
]
