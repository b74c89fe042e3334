"""
Paired comparison of a baseline and a variant measurement.

Every metric carries a polarity that fixes its ratio direction:

* lower-is-better (latency):    ratio = baseline / variant
* higher-is-better (throughput): ratio = variant / baseline

so a ratio above 1 always means the variant did better. A zero or
missing denominator makes that one ratio undefined; the rest of the
comparison goes on.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from instrumentation.timing import NS_PER_MS, ns_to_ms

from .errors import InvalidConfiguration
from .sampler import ColdStartResult
from .stats import Summary

UNDEFINED = "undefined"


class Polarity(Enum):
    """Whether a metric improves by going down or up."""

    LOWER_IS_BETTER = "lower-is-better"
    HIGHER_IS_BETTER = "higher-is-better"


class Verdict(Enum):
    """Qualitative reading of the headline ratio."""

    SIGNIFICANT = "significant improvement"
    MINIMAL = "minimal"
    UNDEFINED = UNDEFINED


# (attribute, display name, polarity) in display order
SUMMARY_METRICS = (
    ("mean_ns", "Average", Polarity.LOWER_IS_BETTER),
    ("min_ns", "Minimum", Polarity.LOWER_IS_BETTER),
    ("max_ns", "Maximum", Polarity.LOWER_IS_BETTER),
    ("p50_ns", "P50", Polarity.LOWER_IS_BETTER),
    ("p95_ns", "P95", Polarity.LOWER_IS_BETTER),
    ("p99_ns", "P99", Polarity.LOWER_IS_BETTER),
    ("throughput_ops_per_sec", "Ops/sec", Polarity.HIGHER_IS_BETTER),
)

COLD_START_METRICS = (
    ("duration_ns", "Cold Start", Polarity.LOWER_IS_BETTER),
)


class InsightThresholds(BaseModel):
    """Thresholds used to turn ratios into an Insight.

    significant_ratio: headline ratio above which the variant counts as a
        significant improvement
    high_latency_ns: variant mean above which latency is flagged as high
    reconnect_ratio: reconnect ratio above which connection reuse counts as
        highly beneficial
    fast_query_ns: batch mean under which an operation suits high-frequency use
    """

    significant_ratio: float = Field(default=2.0, gt=0)
    high_latency_ns: float = Field(default=10 * NS_PER_MS, gt=0)
    reconnect_ratio: float = Field(default=2.0, gt=0)
    fast_query_ns: float = Field(default=5 * NS_PER_MS, gt=0)


def make_thresholds(**values: Any) -> InsightThresholds:
    """Build thresholds, reporting bad values as InvalidConfiguration."""
    try:
        return InsightThresholds(**values)
    except ValidationError as e:
        raise InvalidConfiguration(f"Invalid insight thresholds: {e}") from e


@dataclass(frozen=True)
class MetricComparison:
    """Delta and ratio of one metric."""

    metric: str
    display_name: str
    polarity: Polarity
    baseline: Optional[float]
    variant: Optional[float]
    delta: Optional[float]
    ratio: Optional[float]

    @property
    def ratio_undefined(self) -> bool:
        return self.ratio is None

    @property
    def ratio_display(self) -> Union[float, str]:
        return UNDEFINED if self.ratio is None else round(self.ratio, 1)

    def describe_ratio(self) -> str:
        """Human-readable speedup, e.g. ``2.0x faster``."""
        if self.ratio is None:
            return UNDEFINED
        word = "faster" if self.polarity is Polarity.LOWER_IS_BETTER else "higher"
        return f"{self.ratio:.1f}x {word}"


def compare_metric(
    metric: str,
    display_name: str,
    polarity: Polarity,
    baseline: Optional[float],
    variant: Optional[float],
) -> MetricComparison:
    """Compute delta and polarity-aware ratio for a single metric."""
    delta = None
    if baseline is not None and variant is not None:
        delta = variant - baseline

    if polarity is Polarity.LOWER_IS_BETTER:
        numerator, denominator = baseline, variant
    else:
        numerator, denominator = variant, baseline

    ratio = None
    if numerator is not None and denominator is not None and denominator != 0:
        ratio = numerator / denominator

    return MetricComparison(
        metric=metric,
        display_name=display_name,
        polarity=polarity,
        baseline=baseline,
        variant=variant,
        delta=delta,
        ratio=ratio,
    )


@dataclass(frozen=True)
class Insight:
    """Qualitative reading of a comparison."""

    verdict: Verdict
    headline_ratio: Optional[float]
    high_latency: bool
    messages: list[str] = field(default_factory=list)

    @property
    def significant(self) -> bool:
        return self.verdict is Verdict.SIGNIFICANT


@dataclass(frozen=True)
class ComparisonResult:
    """Baseline vs variant, metric by metric."""

    name: str
    baseline_label: str
    variant_label: str
    metrics: list[MetricComparison]
    insight: Insight

    def metric(self, name: str) -> MetricComparison:
        for comparison in self.metrics:
            if comparison.metric == name:
                return comparison
        raise KeyError(name)

    def to_rows(self) -> list[tuple[str, Any]]:
        """Ordered (metric, value) pairs for table rendering."""
        rows: list[tuple[str, Any]] = []
        for m in self.metrics:
            rows.append((f"{m.display_name} delta", _display_value(m.metric, m.delta)))
            rows.append((f"{m.display_name} ratio", m.ratio_display))
        rows.append(("Verdict", self.insight.verdict.value))
        return rows

    def to_record(self) -> dict:
        """Flat key/value record for log ingestion."""
        record: dict[str, Any] = {
            "comparison": self.name,
            "baseline": self.baseline_label,
            "variant": self.variant_label,
        }
        for m in self.metrics:
            record[f"{m.metric}_baseline"] = m.baseline
            record[f"{m.metric}_variant"] = m.variant
            record[f"{m.metric}_delta"] = m.delta
            record[f"{m.metric}_ratio"] = m.ratio if m.ratio is not None else UNDEFINED
            record[f"{m.metric}_polarity"] = m.polarity.value
        record["verdict"] = self.insight.verdict.value
        record["high_latency"] = self.insight.high_latency
        return record


def _display_value(metric: str, value: Optional[float]) -> Union[float, str]:
    if value is None:
        return UNDEFINED
    if metric.endswith("_ns"):
        return round(ns_to_ms(value), 3)
    return round(value, 1)


def _headline_insight(
    headline: MetricComparison,
    variant_mean_ns: Optional[float],
    thresholds: InsightThresholds,
    subject: str,
) -> Insight:
    messages = []
    if headline.ratio is None:
        verdict = Verdict.UNDEFINED
        messages.append(f"{subject}: speedup is undefined (zero {headline.display_name.lower()})")
    elif headline.ratio > thresholds.significant_ratio:
        verdict = Verdict.SIGNIFICANT
        messages.append(f"{subject} shows significant benefit ({headline.describe_ratio()})")
    else:
        verdict = Verdict.MINIMAL
        messages.append(f"{subject} benefit is minimal ({headline.describe_ratio()})")

    high_latency = variant_mean_ns is not None and variant_mean_ns > thresholds.high_latency_ns
    if high_latency:
        messages.append(
            f"High absolute latency ({ns_to_ms(variant_mean_ns):.3f} ms) - "
            "check database/network performance"
        )
    elif variant_mean_ns is not None:
        messages.append(f"Good absolute latency ({ns_to_ms(variant_mean_ns):.3f} ms)")

    return Insight(
        verdict=verdict,
        headline_ratio=headline.ratio,
        high_latency=high_latency,
        messages=messages,
    )


def compare_summaries(
    baseline: Summary,
    variant: Summary,
    thresholds: Optional[InsightThresholds] = None,
    name: str = "comparison",
) -> ComparisonResult:
    """Compare two batch summaries produced with the same trial count."""
    if baseline.count != variant.count:
        raise InvalidConfiguration(
            f"Cannot compare {baseline.label} ({baseline.count} trials) "
            f"with {variant.label} ({variant.count} trials)"
        )
    thresholds = thresholds or InsightThresholds()

    metrics = [
        compare_metric(attr, display, polarity, getattr(baseline, attr), getattr(variant, attr))
        for attr, display, polarity in SUMMARY_METRICS
    ]
    insight = _headline_insight(metrics[0], variant.mean_ns, thresholds, variant.label)

    return ComparisonResult(
        name=name,
        baseline_label=baseline.label,
        variant_label=variant.label,
        metrics=metrics,
        insight=insight,
    )


def compare_cold_starts(
    baseline: ColdStartResult,
    variant: ColdStartResult,
    thresholds: Optional[InsightThresholds] = None,
    name: str = "cold_start",
) -> ComparisonResult:
    """Compare two single-shot cold-start measurements."""
    thresholds = thresholds or InsightThresholds()

    metrics = [
        compare_metric(attr, display, polarity, getattr(baseline, attr), getattr(variant, attr))
        for attr, display, polarity in COLD_START_METRICS
    ]
    insight = _headline_insight(metrics[0], variant.duration_ns, thresholds, f"{variant.label} cold start")

    return ComparisonResult(
        name=name,
        baseline_label=baseline.label,
        variant_label=variant.label,
        metrics=metrics,
        insight=insight,
    )


def reconnect_insight(comparison: ComparisonResult, thresholds: InsightThresholds) -> Optional[str]:
    """Flag connection reuse as highly beneficial when reconnects got much faster."""
    headline = comparison.metric("mean_ns")
    if headline.ratio is not None and headline.ratio > thresholds.reconnect_ratio:
        return f"Connection reuse is highly beneficial ({headline.describe_ratio()} reconnects)"
    return None


@dataclass(frozen=True)
class ColdStartOverhead:
    """How much slower the cold start was than the steady-state mean."""

    cold_start_ns: int
    batch_mean_ns: float
    overhead_ns: float
    multiplier: Optional[float]
    high_frequency: bool

    @property
    def recommendation(self) -> str:
        return "High-frequency queries" if self.high_frequency else "Standard queries"

    def to_rows(self) -> list[tuple[str, Any]]:
        multiplier = UNDEFINED if self.multiplier is None else f"{self.multiplier:.1f}x slower"
        return [
            ("Cold Start vs Avg Batch", multiplier),
            ("Connection Overhead", f"{ns_to_ms(self.overhead_ns):.3f} ms"),
            ("Recommended for", self.recommendation),
        ]

    def to_record(self) -> dict:
        return {
            "cold_start_ns": self.cold_start_ns,
            "batch_mean_ns": self.batch_mean_ns,
            "cold_start_overhead_ns": self.overhead_ns,
            "cold_start_multiplier": self.multiplier if self.multiplier is not None else UNDEFINED,
            "recommendation": self.recommendation,
        }


def cold_start_overhead(
    cold: ColdStartResult,
    summary: Summary,
    thresholds: Optional[InsightThresholds] = None,
) -> ColdStartOverhead:
    """Relate a cold start to the steady-state batch that followed it."""
    thresholds = thresholds or InsightThresholds()
    multiplier = cold.duration_ns / summary.mean_ns if summary.mean_ns != 0 else None
    return ColdStartOverhead(
        cold_start_ns=cold.duration_ns,
        batch_mean_ns=summary.mean_ns,
        overhead_ns=cold.duration_ns - summary.mean_ns,
        multiplier=multiplier,
        high_frequency=summary.mean_ns < thresholds.fast_query_ns,
    )
