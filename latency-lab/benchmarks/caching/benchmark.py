"""
Caching benchmarks - Query cache bypass and cached vs uncached comparison.

MySQL can be told to skip its query cache with ``SELECT SQL_NO_CACHE``.
These benchmarks time the bypassed query on its own, or run the same
probe with and without the hint and report how much the cache buys.
Other backends have no such hint; they fall back to a standard query.
"""

from typing import Optional, Union

from harness.compare import InsightThresholds, make_thresholds
from harness.runner import BenchmarkConfig, BenchmarkResult, ComparisonReport
from instrumentation.timing import NS_PER_MS

from ..ping import DatabasePing
from ..suite import TargetBenchmarkSuite

CACHE_THRESHOLDS = {"significant_ratio": 2.0, "high_latency_ns": 10 * NS_PER_MS}


class CachingBenchmarkSuite(TargetBenchmarkSuite):
    """Suite of query-cache benchmarks."""

    title = "QUERY CACHE BENCHMARK"

    def _config(self, name: str, trials: int, table: Optional[str]) -> BenchmarkConfig:
        return BenchmarkConfig(
            name=name,
            description="Query latency with the query cache bypassed",
            trials=trials,
            deadline_seconds=self.deadline_seconds,
            metadata={"table": table} if table else {},
        )

    def run_no_cache(self, trials: int = 100, table: Optional[str] = None) -> BenchmarkResult:
        """Time the cache-bypassing probe on its own."""
        config = self._config("no_cache", trials, table)
        backend = self.target.backend

        self.show_connection(f"Queries: {trials}")
        if not backend.supports_query_cache:
            self.warn(
                f"SQL_NO_CACHE is only supported by MySQL; "
                f"running standard queries on {self.target.driver}"
            )

        with DatabasePing(self.target, no_cache=True, table=table, name="no cache") as provider:
            result = self.runner.run_benchmark(provider, config)

        self.report_result(
            result,
            title="No-Cache Query Benchmark",
            subtitle=f"{self.target.name} ({self.target.driver}), {trials} queries",
        )
        return result

    def compare_cached_vs_uncached(
        self,
        trials: int = 100,
        table: Optional[str] = None,
        thresholds: Optional[InsightThresholds] = None,
    ) -> ComparisonReport:
        """Uncached baseline vs cached variant of the same probe."""
        config = self._config("cache_comparison", trials, table)
        thresholds = thresholds or make_thresholds(**CACHE_THRESHOLDS)

        self.show_connection(f"Queries: {trials} per mode")
        with DatabasePing(self.target, no_cache=True, table=table, name="No Cache") as baseline, \
                DatabasePing(self.target, no_cache=False, table=table, name="With Cache") as variant:
            report = self.runner.run_comparison(
                baseline, variant, config, thresholds, name="Cache Benefit"
            )

        self.report_comparison(
            report,
            title="Query Cache Comparison",
            subtitle=f"{self.target.name} ({self.target.driver}), {trials} queries per mode",
        )
        return report

    def run(
        self,
        trials: int = 100,
        compare: bool = False,
        table: Optional[str] = None,
        thresholds: Optional[InsightThresholds] = None,
    ) -> Union[BenchmarkResult, ComparisonReport]:
        """Comparison when asked for and supported, a single no-cache run otherwise."""
        if compare and not self.target.backend.supports_query_cache:
            self.warn(
                f"Query cache comparison requires MySQL ({self.target.driver} has no "
                f"SQL_NO_CACHE); running a single no-cache test instead"
            )
            compare = False

        if compare:
            return self.compare_cached_vs_uncached(trials, table, thresholds)
        return self.run_no_cache(trials, table)
