"""
Persistence benchmarks - Pooled vs non-persistent connections.

A non-persistent provider closes its connection whenever it is released,
so the next session pays for a new handshake. A persistent provider
returns the connection to the engine's pool and picks it up again.

Besides the usual cold start and batch, each provider runs a short
reconnect batch: the connection is released before every trial, so the
batch measures what a new request costs in each mode.
"""

from typing import Optional, Union

from harness.compare import InsightThresholds, make_thresholds
from harness.runner import BenchmarkConfig, BenchmarkResult, ComparisonReport

from ..ping import DatabasePing
from ..suite import TargetBenchmarkSuite

RECONNECT_TRIALS = 10
PERSISTENCE_THRESHOLDS = {"significant_ratio": 1.5, "reconnect_ratio": 2.0}


def mode_name(persistent: bool) -> str:
    return "Persistent" if persistent else "Non-Persistent"


class PersistenceBenchmarkSuite(TargetBenchmarkSuite):
    """Suite of connection persistence benchmarks."""

    title = "CONNECTION PERSISTENCE BENCHMARK"

    def _config(self, name: str, trials: int, reconnect_trials: int) -> BenchmarkConfig:
        return BenchmarkConfig(
            name=name,
            description="Query latency with pooled vs non-persistent connections",
            trials=trials,
            deadline_seconds=self.deadline_seconds,
            reconnect_trials=reconnect_trials,
        )

    def _provider(self, persistent: bool, no_cache: bool, table: Optional[str]) -> DatabasePing:
        return DatabasePing(
            self.target,
            persistent=persistent,
            no_cache=no_cache,
            table=table,
            name=mode_name(persistent),
        )

    def run_single(
        self,
        trials: int = 100,
        persistent: bool = False,
        no_cache: bool = False,
        table: Optional[str] = None,
        reconnect_trials: int = RECONNECT_TRIALS,
        thresholds: Optional[InsightThresholds] = None,
    ) -> BenchmarkResult:
        """Benchmark one connection mode."""
        config = self._config(f"{mode_name(persistent).lower()}_connection", trials, reconnect_trials)
        thresholds = thresholds or make_thresholds(**PERSISTENCE_THRESHOLDS)

        self.show_connection(f"Mode: {mode_name(persistent)}, queries: {trials}")
        with self._provider(persistent, no_cache, table) as provider:
            result = self.runner.run_benchmark(provider, config, thresholds)

        self.report_result(
            result,
            title=f"{mode_name(persistent)} Connection Benchmark",
            subtitle=f"{self.target.name} ({self.target.driver}), {trials} queries",
        )
        return result

    def compare_persistent_vs_non_persistent(
        self,
        trials: int = 100,
        no_cache: bool = False,
        table: Optional[str] = None,
        reconnect_trials: int = RECONNECT_TRIALS,
        thresholds: Optional[InsightThresholds] = None,
    ) -> ComparisonReport:
        """Non-persistent baseline vs persistent variant."""
        config = self._config("persistence_comparison", trials, reconnect_trials)
        thresholds = thresholds or make_thresholds(**PERSISTENCE_THRESHOLDS)

        self.show_connection(f"Queries: {trials} per mode, reconnects: {reconnect_trials}")
        with self._provider(False, no_cache, table) as baseline, \
                self._provider(True, no_cache, table) as variant:
            report = self.runner.run_comparison(
                baseline, variant, config, thresholds, name="Persistent Connections"
            )

        self.report_comparison(
            report,
            title="Connection Persistence Comparison",
            subtitle=f"{self.target.name} ({self.target.driver}), {trials} queries per mode",
        )
        return report

    def run(
        self,
        trials: int = 100,
        persistent: bool = False,
        compare: bool = False,
        no_cache: bool = False,
        table: Optional[str] = None,
        thresholds: Optional[InsightThresholds] = None,
    ) -> Union[BenchmarkResult, ComparisonReport]:
        if compare:
            return self.compare_persistent_vs_non_persistent(
                trials, no_cache=no_cache, table=table, thresholds=thresholds
            )
        return self.run_single(
            trials, persistent=persistent, no_cache=no_cache, table=table, thresholds=thresholds
        )
