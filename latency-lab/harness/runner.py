"""
Benchmark orchestrator for running latency experiments.

Runs one operation provider through a cold start, a steady-state batch and
(optionally) a reconnect batch, or runs two differently configured
providers and compares them. Every call returns its own result value;
nothing is accumulated across runs.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from instrumentation.timing import Clock, ns_to_ms
from instrumentation.traces import Tracer

from .compare import (
    ColdStartOverhead,
    ComparisonResult,
    InsightThresholds,
    cold_start_overhead,
    compare_cold_starts,
    compare_summaries,
    reconnect_insight,
)
from .errors import InvalidConfiguration
from .sampler import ColdStartResult, Operation, Sampler, TrialSet, reset_operation
from .stats import Summary, summarize

logger = logging.getLogger(__name__)


def _positive_int(value, what: str, allow_zero: bool = False) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidConfiguration(f"{what} must be an integer, got {value!r}")
    if value < 0 or (value == 0 and not allow_zero):
        raise InvalidConfiguration(f"{what} must be positive, got {value}")
    return value


@dataclass
class BenchmarkConfig:
    """Configuration for a benchmark run."""

    name: str
    description: str = ""
    trials: int = 100
    deadline_seconds: Optional[float] = None
    cold_start: bool = True
    reconnect_trials: int = 0
    metadata: dict = field(default_factory=dict)

    def __post_init__(self):
        _positive_int(self.trials, "Trial count")
        _positive_int(self.reconnect_trials, "Reconnect trial count", allow_zero=True)
        if self.deadline_seconds is not None and self.deadline_seconds <= 0:
            raise InvalidConfiguration(f"Deadline must be positive, got {self.deadline_seconds}")

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            "name": self.name,
            "description": self.description,
            "trials": self.trials,
            "deadline_seconds": self.deadline_seconds,
            "cold_start": self.cold_start,
            "reconnect_trials": self.reconnect_trials,
            "metadata": self.metadata,
        }


@dataclass(frozen=True)
class BenchmarkResult:
    """Results from one provider's run."""

    config: BenchmarkConfig
    label: str
    trial_set: TrialSet
    summary: Summary
    start_time: datetime
    end_time: datetime
    cold_start: Optional[ColdStartResult] = None
    overhead: Optional[ColdStartOverhead] = None
    reconnect: Optional[Summary] = None

    @property
    def duration_seconds(self) -> float:
        return (self.end_time - self.start_time).total_seconds()

    def to_dict(self) -> dict:
        """Convert result to dictionary for serialization."""
        return {
            "config": self.config.to_dict(),
            "label": self.label,
            "summary": self.summary.to_record(),
            "cold_start": self.cold_start.to_record() if self.cold_start else None,
            "overhead": self.overhead.to_record() if self.overhead else None,
            "reconnect": self.reconnect.to_record() if self.reconnect else None,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "duration_seconds": self.duration_seconds,
        }


@dataclass(frozen=True)
class ComparisonReport:
    """Baseline vs variant results with their per-phase comparisons."""

    name: str
    baseline: BenchmarkResult
    variant: BenchmarkResult
    batch: ComparisonResult
    cold_start: Optional[ComparisonResult] = None
    reconnect: Optional[ComparisonResult] = None
    insights: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "baseline": self.baseline.to_dict(),
            "variant": self.variant.to_dict(),
            "batch": self.batch.to_record(),
            "cold_start": self.cold_start.to_record() if self.cold_start else None,
            "reconnect": self.reconnect.to_record() if self.reconnect else None,
            "insights": list(self.insights),
        }


class BenchmarkRunner:
    """Orchestrates benchmark execution."""

    def __init__(
        self,
        clock: Optional[Clock] = None,
        tracer: Optional[Tracer] = None,
        verbose: bool = True,
    ):
        self.clock = clock
        self.tracer = tracer or Tracer()
        self.verbose = verbose

    def _sampler(self, config: BenchmarkConfig) -> Sampler:
        return Sampler(clock=self.clock, deadline_seconds=config.deadline_seconds)

    def _say(self, message: str) -> None:
        if self.verbose:
            print(message)

    def run_benchmark(
        self,
        operation: Operation,
        config: BenchmarkConfig,
        thresholds: Optional[InsightThresholds] = None,
    ) -> BenchmarkResult:
        """Cold start, then a batch of ``config.trials``, then reconnects if asked."""
        if config.reconnect_trials and not callable(getattr(operation, "reset", None)):
            raise InvalidConfiguration(
                f"{operation.name} has no reset hook; cannot measure reconnects"
            )

        sampler = self._sampler(config)
        label = operation.name
        start_time = datetime.now()

        self._say(f"\nRunning benchmark: {config.name} [{label}]")
        self._say(f"  Trials: {config.trials}")

        cold = None
        if config.cold_start:
            with self.tracer.span("cold_start", {"operation": label}) as span:
                cold = sampler.cold_start(operation)
                span.set_attribute("duration_ns", cold.duration_ns)
            self._say(f"  Cold start: {cold.duration_ms:.3f} ms")

        with self.tracer.span("batch", {"operation": label, "trials": config.trials}) as span:
            prepare = getattr(operation, "prepare", None)
            trial_set = sampler.sample(
                operation, config.trials, prepare=prepare if callable(prepare) else None
            )
            summary = summarize(trial_set)
            span.set_attribute("mean_ns", summary.mean_ns)
        throughput = summary.throughput_ops_per_sec
        self._say(
            f"  Batch: avg {summary.mean_ms:.3f} ms, "
            + (f"{throughput:.1f} ops/sec" if throughput is not None else "ops/sec undefined")
        )

        reconnect = None
        if config.reconnect_trials:
            with self.tracer.span(
                "reconnect_batch", {"operation": label, "trials": config.reconnect_trials}
            ):
                reconnect_set = sampler.sample(
                    operation,
                    config.reconnect_trials,
                    prepare=lambda: reset_operation(operation),
                )
                reconnect = summarize(reconnect_set)
            self._say(f"  Reconnect: avg {reconnect.mean_ms:.3f} ms per reconnect")

        overhead = cold_start_overhead(cold, summary, thresholds) if cold is not None else None
        end_time = datetime.now()
        logger.debug("Finished %s in %.3fs", label, (end_time - start_time).total_seconds())

        return BenchmarkResult(
            config=config,
            label=label,
            trial_set=trial_set,
            summary=summary,
            start_time=start_time,
            end_time=end_time,
            cold_start=cold,
            overhead=overhead,
            reconnect=reconnect,
        )

    def run_comparison(
        self,
        baseline: Operation,
        variant: Operation,
        config: BenchmarkConfig,
        thresholds: Optional[InsightThresholds] = None,
        name: Optional[str] = None,
    ) -> ComparisonReport:
        """Run the same benchmark against two providers and compare them.

        Each provider gets its own cold start before its batch, so neither
        batch is warmed by the other's cold start.
        """
        thresholds = thresholds or InsightThresholds()
        name = name or config.name

        baseline_result = self.run_benchmark(baseline, config, thresholds)
        variant_result = self.run_benchmark(variant, config, thresholds)

        with self.tracer.span("comparison", {"name": name}):
            batch = compare_summaries(
                baseline_result.summary, variant_result.summary, thresholds, name=f"{name}_batch"
            )
            cold = None
            if baseline_result.cold_start is not None and variant_result.cold_start is not None:
                cold = compare_cold_starts(
                    baseline_result.cold_start,
                    variant_result.cold_start,
                    thresholds,
                    name=f"{name}_cold_start",
                )
            reconnect = None
            if baseline_result.reconnect is not None and variant_result.reconnect is not None:
                reconnect = compare_summaries(
                    baseline_result.reconnect,
                    variant_result.reconnect,
                    thresholds,
                    name=f"{name}_reconnect",
                )

        insights = list(batch.insight.messages)
        if reconnect is not None:
            message = reconnect_insight(reconnect, thresholds)
            if message:
                insights.append(message)

        if self.verbose:
            mean = batch.metric("mean_ns")
            print(
                f"\n  {variant_result.label} vs {baseline_result.label}: "
                f"{ns_to_ms(mean.variant):.3f} ms vs {ns_to_ms(mean.baseline):.3f} ms "
                f"({mean.describe_ratio()})"
            )

        return ComparisonReport(
            name=name,
            baseline=baseline_result,
            variant=variant_result,
            batch=batch,
            cold_start=cold,
            reconnect=reconnect,
            insights=insights,
        )
