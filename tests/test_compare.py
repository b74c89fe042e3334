"""Tests for the comparator."""

import pytest

from harness.compare import (
    UNDEFINED,
    Polarity,
    Verdict,
    cold_start_overhead,
    compare_cold_starts,
    compare_metric,
    compare_summaries,
    make_thresholds,
    reconnect_insight,
)
from harness.errors import InvalidConfiguration
from harness.sampler import ColdStartResult
from harness.stats import Summary

MS = 1_000_000


def make_summary(mean_ns, label="op", count=10, throughput=100.0, **overrides):
    values = dict(
        label=label,
        count=count,
        total_elapsed_ns=int(mean_ns * count),
        sum_samples_ns=int(mean_ns * count),
        min_ns=int(mean_ns),
        max_ns=int(mean_ns),
        mean_ns=mean_ns,
        p50_ns=int(mean_ns),
        p95_ns=int(mean_ns),
        p99_ns=int(mean_ns),
        throughput_ops_per_sec=throughput,
    )
    values.update(overrides)
    return Summary(**values)


class TestCompareMetric:
    def test_lower_is_better(self):
        m = compare_metric("mean_ns", "Average", Polarity.LOWER_IS_BETTER, 200, 100)
        assert m.delta == -100
        assert m.ratio == 2.0
        assert m.describe_ratio() == "2.0x faster"

    def test_higher_is_better(self):
        m = compare_metric("throughput_ops_per_sec", "Ops/sec", Polarity.HIGHER_IS_BETTER, 100, 300)
        assert m.delta == 200
        assert m.ratio == 3.0
        assert m.describe_ratio() == "3.0x higher"

    def test_zero_variant_latency_is_undefined(self):
        m = compare_metric("mean_ns", "Average", Polarity.LOWER_IS_BETTER, 200, 0)
        assert m.ratio is None
        assert m.ratio_undefined
        assert m.ratio_display == UNDEFINED
        assert m.describe_ratio() == UNDEFINED
        assert m.delta == -200

    def test_missing_throughput_is_undefined(self):
        m = compare_metric("throughput_ops_per_sec", "Ops/sec", Polarity.HIGHER_IS_BETTER, None, 10.0)
        assert m.ratio is None
        assert m.delta is None


class TestCompareSummaries:
    def test_significant_improvement(self):
        result = compare_summaries(make_summary(4 * MS, "slow"), make_summary(1 * MS, "fast"))

        assert result.metric("mean_ns").ratio == 4.0
        assert result.insight.verdict is Verdict.SIGNIFICANT
        assert result.insight.significant
        assert not result.insight.high_latency
        assert any("significant benefit" in m for m in result.insight.messages)
        assert any("Good absolute latency" in m for m in result.insight.messages)

    def test_minimal_and_high_latency(self):
        result = compare_summaries(make_summary(25 * MS), make_summary(20 * MS))

        assert result.insight.verdict is Verdict.MINIMAL
        assert result.insight.high_latency
        assert any("High absolute latency" in m for m in result.insight.messages)

    def test_ratio_equal_to_threshold_is_minimal(self):
        result = compare_summaries(make_summary(2 * MS), make_summary(1 * MS))
        assert result.insight.verdict is Verdict.MINIMAL

    def test_custom_thresholds(self):
        thresholds = make_thresholds(significant_ratio=1.5)
        result = compare_summaries(make_summary(2 * MS), make_summary(1 * MS), thresholds)
        assert result.insight.verdict is Verdict.SIGNIFICANT

    def test_zero_variant_mean_does_not_abort(self):
        variant = make_summary(0, throughput=None)
        result = compare_summaries(make_summary(1 * MS), variant)

        assert result.insight.verdict is Verdict.UNDEFINED
        assert result.metric("mean_ns").ratio is None
        assert result.metric("throughput_ops_per_sec").ratio is None
        record = result.to_record()
        assert record["mean_ns_ratio"] == UNDEFINED
        assert record["verdict"] == UNDEFINED

    def test_count_mismatch_rejected(self):
        with pytest.raises(InvalidConfiguration):
            compare_summaries(make_summary(MS, count=10), make_summary(MS, count=5))

    def test_record_keys(self):
        record = compare_summaries(make_summary(2 * MS, "a"), make_summary(MS, "b"), name="x").to_record()
        assert record["comparison"] == "x"
        assert record["baseline"] == "a"
        assert record["variant"] == "b"
        assert record["mean_ns_ratio"] == 2.0
        assert record["mean_ns_polarity"] == "lower-is-better"
        assert record["throughput_ops_per_sec_polarity"] == "higher-is-better"

    def test_rows(self):
        rows = dict(compare_summaries(make_summary(2 * MS), make_summary(MS)).to_rows())
        assert rows["Average ratio"] == 2.0
        assert rows["Average delta"] == -1.0
        assert rows["Verdict"] == "minimal"


def test_compare_cold_starts():
    baseline = ColdStartResult(label="cold", duration_ns=30 * MS)
    variant = ColdStartResult(label="warm", duration_ns=3 * MS)

    result = compare_cold_starts(baseline, variant)

    assert result.metric("duration_ns").ratio == 10.0
    assert result.insight.verdict is Verdict.SIGNIFICANT
    assert "warm cold start" in result.insight.messages[0]


def test_reconnect_insight():
    thresholds = make_thresholds()
    fast = compare_summaries(make_summary(9 * MS), make_summary(3 * MS))
    slow = compare_summaries(make_summary(3 * MS), make_summary(2 * MS))

    assert "highly beneficial" in reconnect_insight(fast, thresholds)
    assert reconnect_insight(slow, thresholds) is None


class TestColdStartOverhead:
    def test_overhead_and_recommendation(self):
        cold = ColdStartResult(label="op", duration_ns=12 * MS)
        overhead = cold_start_overhead(cold, make_summary(2 * MS))

        assert overhead.multiplier == 6.0
        assert overhead.overhead_ns == 10 * MS
        assert overhead.recommendation == "High-frequency queries"
        rows = dict(overhead.to_rows())
        assert rows["Cold Start vs Avg Batch"] == "6.0x slower"

    def test_slow_batch_is_standard(self):
        cold = ColdStartResult(label="op", duration_ns=12 * MS)
        overhead = cold_start_overhead(cold, make_summary(8 * MS))
        assert overhead.recommendation == "Standard queries"

    def test_zero_mean_multiplier_undefined(self):
        cold = ColdStartResult(label="op", duration_ns=MS)
        overhead = cold_start_overhead(cold, make_summary(0))
        assert overhead.multiplier is None
        assert overhead.to_record()["cold_start_multiplier"] == UNDEFINED


@pytest.mark.parametrize("field", ["significant_ratio", "high_latency_ns", "reconnect_ratio", "fast_query_ns"])
def test_thresholds_must_be_positive(field):
    with pytest.raises(InvalidConfiguration):
        make_thresholds(**{field: 0})
