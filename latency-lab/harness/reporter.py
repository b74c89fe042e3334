"""
Results rendering and logging for benchmark results.

Provides CLI tables, a JSON-lines structured log and charts.
"""

import json
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence

from instrumentation.timing import ns_to_ms

from .compare import ComparisonResult, UNDEFINED
from .runner import BenchmarkResult, ComparisonReport

results_logger = logging.getLogger("latency_lab.results")


class ConsoleReporter:
    """Generates console/CLI reports."""

    def __init__(self, use_color: bool = True):
        self.use_color = use_color

    def _color(self, text: str, color: str) -> str:
        """Apply ANSI color if enabled."""
        if not self.use_color:
            return text

        colors = {
            "green": "\033[92m",
            "red": "\033[91m",
            "yellow": "\033[93m",
            "blue": "\033[94m",
            "bold": "\033[1m",
            "reset": "\033[0m",
        }

        return f"{colors.get(color, '')}{text}{colors['reset']}"

    def format_duration(self, ns: Optional[float]) -> str:
        """Format a nanosecond duration for display."""
        if ns is None:
            return UNDEFINED
        ms = ns_to_ms(ns)
        if ms < 1:
            return f"{ns / 1000:.1f}μs"
        if ms < 1000:
            return f"{ms:.3f}ms"
        return f"{ms / 1000:.2f}s"

    def format_ratio(self, comparison, ratio_text: Optional[str] = None) -> str:
        """Format a ratio with color: green when the variant did better."""
        text = ratio_text or comparison.describe_ratio()
        if comparison.ratio is None:
            return self._color(text, "yellow")
        if comparison.ratio > 1:
            return self._color(text, "green")
        if comparison.ratio < 1:
            return self._color(text, "red")
        return text

    def table(self, headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
        """Render a boxed fixed-width table."""
        rows = [[str(cell) for cell in row] for row in rows]
        widths = [len(h) for h in headers]
        for row in rows:
            for i, cell in enumerate(row):
                widths[i] = max(widths[i], len(_strip_ansi(cell)))

        border = "+" + "+".join("-" * (w + 2) for w in widths) + "+"

        def render(cells):
            padded = []
            for i, cell in enumerate(cells):
                padding = widths[i] - len(_strip_ansi(cell))
                padded.append(f" {cell}{' ' * padding} ")
            return "|" + "|".join(padded) + "|"

        lines = [border, render(headers), border]
        lines.extend(render(row) for row in rows)
        lines.append(border)
        return "\n".join(lines)

    def header(self, title: str, subtitle: str = "", width: int = 60) -> str:
        lines = [
            self._color(f"\n{'=' * width}", "blue"),
            self._color(title, "bold"),
        ]
        if subtitle:
            lines.append(subtitle)
        lines.append(self._color("=" * width, "blue"))
        return "\n".join(lines)

    def section(self, title: str) -> str:
        return self._color(f"\n>> {title}", "bold")

    def connection_details(self, details: dict) -> str:
        """Setting/value table for a target's connection details."""
        return self.table(["Setting", "Value"], list(details.items()))

    def single_result(self, result: BenchmarkResult, title: str = "", subtitle: str = "") -> str:
        """Generate report for a single benchmark result."""
        lines = [self.header(title or f"Benchmark: {result.config.name}", subtitle)]

        if result.cold_start is not None:
            lines.append(self.section(f"COLD START ({result.cold_start.label})"))
            lines.append(self.table(["Metric", "Value"], result.cold_start.to_rows()))

        lines.append(self.section(f"BATCH ({result.summary.count} x {result.label})"))
        lines.append(self.table(["Metric", "Value"], result.summary.to_rows()))

        if result.reconnect is not None:
            reconnect = result.reconnect
            lines.append(self.section(f"CONNECTION REUSE ({reconnect.count} reconnects)"))
            lines.append(self.table(["Metric", "Value"], [
                ("Avg Reconnect (ms)", round(ns_to_ms(reconnect.mean_ns), 3)),
                ("Min Reconnect (ms)", round(ns_to_ms(reconnect.min_ns), 3)),
                ("Max Reconnect (ms)", round(ns_to_ms(reconnect.max_ns), 3)),
            ]))

        if result.overhead is not None:
            lines.append(self.section("SUMMARY"))
            lines.append(self.table(["Comparison", "Value"], result.overhead.to_rows()))

        return "\n".join(lines)

    def comparison_table(
        self,
        comparison: ComparisonResult,
        baseline_name: str,
        variant_name: str,
    ) -> str:
        """Metric / baseline / variant / difference / improvement table."""
        rows = []
        for m in comparison.metrics:
            if m.metric.endswith("_ns"):
                baseline = self.format_duration(m.baseline)
                variant = self.format_duration(m.variant)
                delta = self.format_duration(m.delta) if m.delta is not None else UNDEFINED
                if m.delta is not None and m.delta < 0:
                    delta = "-" + self.format_duration(-m.delta)
            else:
                baseline = f"{m.baseline:.1f}" if m.baseline is not None else UNDEFINED
                variant = f"{m.variant:.1f}" if m.variant is not None else UNDEFINED
                delta = f"{m.delta:+.1f}" if m.delta is not None else UNDEFINED
            rows.append([m.display_name, baseline, variant, delta, self.format_ratio(m)])
        return self.table(
            ["Metric", baseline_name, variant_name, "Difference", "Improvement"], rows
        )

    def comparison_report(self, report: ComparisonReport, title: str = "", subtitle: str = "") -> str:
        """Generate a detailed comparison report."""
        baseline_name = report.baseline.label
        variant_name = report.variant.label
        lines = [self.header(title or f"Comparison Report: {report.name}", subtitle, width=70)]

        if report.cold_start is not None:
            lines.append(self.section("COLD START COMPARISON"))
            lines.append(self.comparison_table(report.cold_start, baseline_name, variant_name))

        lines.append(self.section(f"BATCH COMPARISON ({report.baseline.summary.count} trials each)"))
        lines.append(self.comparison_table(report.batch, baseline_name, variant_name))

        if report.reconnect is not None:
            lines.append(self.section("CONNECTION REUSE COMPARISON"))
            lines.append(self.comparison_table(report.reconnect, baseline_name, variant_name))

        lines.append(self.section("PERFORMANCE INSIGHTS"))
        for message in report.insights:
            lines.append(f"  - {message}")

        return "\n".join(lines)

    def records_table(self, results: list[BenchmarkResult], driver: str) -> str:
        """One row per record operation, with per-record cost."""
        rows = []
        for result in results:
            per_unit = result.config.metadata.get("records_per_trial") or 1
            summary = result.summary
            rows.append([
                result.config.name,
                driver,
                per_unit,
                summary.count,
                f"{ns_to_ms(summary.mean_ns):.3f}",
                f"{ns_to_ms(summary.p95_ns):.3f}",
                f"{ns_to_ms(summary.mean_ns / per_unit):.4f}",
            ])
        return self.table(
            ["Operation", "Driver", "Records", "Iterations", "Avg (ms)", "P95 (ms)", "Per Record (ms)"],
            rows,
        )


_ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


def _strip_ansi(text: str) -> str:
    return _ANSI_RE.sub("", text)


class JSONReporter:
    """Structured log sink: one JSON object per line.

    Every record is also emitted through the ``latency_lab.results`` logger
    so it reaches whatever handlers the application configured.
    """

    def __init__(self, log_file: Optional[Path] = None, context: Optional[dict] = None):
        self.log_file = log_file or Path("results") / "latency-lab.jsonl"
        self.context = dict(context or {})

    def emit(self, event: str, record: dict) -> dict:
        """Append a record to the log file and return what was written."""
        entry = {
            "event": event,
            "timestamp": datetime.now().isoformat(),
            **self.context,
            **record,
        }
        self.log_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.log_file, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, default=str) + "\n")

        driver = self.context.get("driver", "unknown")
        results_logger.info("Benchmark [%s]: %s", driver, event, extra={"record": entry})
        return entry

    def log_result(self, result: BenchmarkResult, variant: str = "") -> list[dict]:
        """Log cold start, batch, reconnect and overhead records of one result."""
        tag = {"variant": variant} if variant else {}
        name = result.config.name
        written = []
        if result.cold_start is not None:
            written.append(self.emit(f"{name}: Cold Start", {**tag, **result.cold_start.to_record()}))
        written.append(self.emit(f"{name}: Batch", {**tag, **result.summary.to_record()}))
        if result.reconnect is not None:
            written.append(self.emit(f"{name}: Connection Reuse", {**tag, **result.reconnect.to_record()}))
        if result.overhead is not None:
            written.append(self.emit(f"{name}: Summary", {**tag, **result.overhead.to_record()}))
        return written

    def log_comparison(self, report: ComparisonReport) -> list[dict]:
        """Log both sides of a comparison plus the comparison records."""
        written = []
        written.extend(self.log_result(report.baseline, variant="baseline"))
        written.extend(self.log_result(report.variant, variant="variant"))
        for comparison in (report.cold_start, report.batch, report.reconnect):
            if comparison is not None:
                written.append(self.emit(f"{report.name}: Comparison", comparison.to_record()))
        written.append(self.emit(f"{report.name}: Insights", {"insights": report.insights}))
        return written


class ChartReporter:
    """Generates visual charts using matplotlib."""

    def __init__(self, output_dir: Optional[Path] = None):
        self.output_dir = output_dir or Path("results/charts")

    def latency_distribution(
        self,
        result: BenchmarkResult,
        filename: Optional[str] = None,
    ) -> Optional[Path]:
        """Generate a latency distribution histogram."""
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt

        latencies = [ns_to_ms(s) for s in result.trial_set.samples]
        if not latencies:
            return None

        summary = result.summary
        fig, ax = plt.subplots(figsize=(10, 6))
        ax.hist(latencies, bins=20, edgecolor="black", alpha=0.7)
        ax.axvline(
            ns_to_ms(summary.p50_ns),
            color="r",
            linestyle="--",
            label=f"p50: {ns_to_ms(summary.p50_ns):.3f}ms",
        )
        ax.axvline(
            ns_to_ms(summary.p95_ns),
            color="orange",
            linestyle="--",
            label=f"p95: {ns_to_ms(summary.p95_ns):.3f}ms",
        )

        ax.set_xlabel("Latency (ms)")
        ax.set_ylabel("Count")
        ax.set_title(f"Latency Distribution: {result.label}")
        ax.legend()

        self.output_dir.mkdir(parents=True, exist_ok=True)
        filename = filename or f"{_slug(result.config.name)}_{_slug(result.label)}_latency_dist.png"
        filepath = self.output_dir / filename
        fig.savefig(filepath, dpi=150, bbox_inches="tight")
        plt.close(fig)

        return filepath

    def comparison_bar_chart(
        self,
        report: ComparisonReport,
        filename: Optional[str] = None,
    ) -> Path:
        """Bar chart of baseline vs variant mean/p50/p95/p99."""
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
        import numpy as np

        metrics = ["mean_ns", "p50_ns", "p95_ns", "p99_ns"]
        labels = ["mean", "p50", "p95", "p99"]
        baseline = [ns_to_ms(report.batch.metric(m).baseline) for m in metrics]
        variant = [ns_to_ms(report.batch.metric(m).variant) for m in metrics]

        x = np.arange(len(labels))
        width = 0.35

        fig, ax = plt.subplots(figsize=(10, 6))
        ax.bar(x - width / 2, baseline, width, label=report.baseline.label, color="steelblue")
        ax.bar(x + width / 2, variant, width, label=report.variant.label, color="coral")

        ax.set_xlabel("Statistic")
        ax.set_ylabel("Latency (ms)")
        ax.set_title(f"Latency Comparison: {report.name}")
        ax.set_xticks(x)
        ax.set_xticklabels(labels)
        ax.legend()

        fig.tight_layout()

        self.output_dir.mkdir(parents=True, exist_ok=True)
        filename = filename or f"{_slug(report.name)}_comparison.png"
        filepath = self.output_dir / filename
        fig.savefig(filepath, dpi=150, bbox_inches="tight")
        plt.close(fig)

        return filepath


def _slug(text: str) -> str:
    return "".join(c if c.isalnum() else "_" for c in text.lower()).strip("_")
