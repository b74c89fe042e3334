"""
Shared plumbing for target benchmark suites.

A suite owns one target and the reporters the CLI configured for it. It
builds providers, hands them to the runner and prints/logs what comes
back.
"""

import logging
from pathlib import Path
from typing import Optional

from harness.reporter import ChartReporter, ConsoleReporter, JSONReporter
from harness.runner import BenchmarkResult, BenchmarkRunner, ComparisonReport
from targets import Target

logger = logging.getLogger(__name__)


class TargetBenchmarkSuite:
    """Base class for suites that benchmark a single target."""

    title = "BENCHMARK SUITE"

    def __init__(
        self,
        target: Target,
        runner: Optional[BenchmarkRunner] = None,
        console: Optional[ConsoleReporter] = None,
        log: Optional[JSONReporter] = None,
        charts: Optional[ChartReporter] = None,
        deadline_seconds: Optional[float] = None,
        quiet: bool = False,
    ):
        self.target = target
        self.runner = runner or BenchmarkRunner(verbose=not quiet)
        self.console = console or ConsoleReporter()
        self.log = log
        self.charts = charts
        self.deadline_seconds = deadline_seconds
        self.quiet = quiet
        self.chart_files: list[Path] = []

    def _print(self, text: str = "") -> None:
        if not self.quiet:
            print(text)

    def warn(self, message: str) -> None:
        logger.warning(message)
        self._print(self.console._color(f"Warning: {message}", "yellow"))

    def show_connection(self, subtitle: str = "") -> None:
        self._print("\n" + "=" * 70)
        self._print(self.title)
        if subtitle:
            self._print(subtitle)
        self._print("=" * 70)
        self._print(self.console.connection_details(self.target.connection_details()))

    def report_result(self, result: BenchmarkResult, title: str = "", subtitle: str = "") -> None:
        self._print(self.console.single_result(result, title=title, subtitle=subtitle))
        if self.log is not None:
            self.log.log_result(result)
        if self.charts is not None:
            path = self.charts.latency_distribution(result)
            if path is not None:
                self.chart_files.append(path)

    def report_comparison(self, report: ComparisonReport, title: str = "", subtitle: str = "") -> None:
        self._print(self.console.comparison_report(report, title=title, subtitle=subtitle))
        if self.log is not None:
            self.log.log_comparison(report)
        if self.charts is not None:
            self.chart_files.append(self.charts.comparison_bar_chart(report))

