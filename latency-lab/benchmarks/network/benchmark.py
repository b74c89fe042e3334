"""
Network benchmarks - HTTP request latency.

Times GET requests against an HTTP endpoint with requests. A persistent
provider keeps one Session, so keep-alive lets later requests skip the
TCP/TLS handshake; a non-persistent provider opens a fresh connection
for every request.
"""

from typing import Optional, Union

import requests

from harness.compare import InsightThresholds, make_thresholds
from harness.errors import InvalidConfiguration, ProviderUnavailable
from harness.runner import BenchmarkConfig, BenchmarkResult, ComparisonReport
from targets import HTTP, Target, backend_for_url

from ..persistence import PERSISTENCE_THRESHOLDS, mode_name
from ..suite import TargetBenchmarkSuite

DEFAULT_TIMEOUT = 5.0


class HttpPing:
    """Operation provider that sends one GET request per invocation."""

    def __init__(
        self,
        url: str,
        persistent: bool = True,
        timeout: float = DEFAULT_TIMEOUT,
        name: Optional[str] = None,
        session_factory=None,
    ):
        if backend_for_url(url).kind != HTTP:
            raise InvalidConfiguration(f"Not an HTTP URL: {url!r}")
        if timeout <= 0:
            raise InvalidConfiguration(f"Timeout must be positive, got {timeout}")

        self.url = url
        self.persistent = persistent
        self.timeout = timeout
        self.name = name or f"GET {url}"
        self._session_factory = session_factory or requests.Session
        self._session: Optional[requests.Session] = None

    def _get_session(self) -> requests.Session:
        if self._session is None:
            self._session = self._session_factory()
        return self._session

    def prepare(self) -> None:
        """Swap in a fresh session before a non-persistent request."""
        if not self.persistent:
            self.reset()
            self._get_session()

    def invoke(self) -> requests.Response:
        session = self._get_session()
        headers = {} if self.persistent else {"Connection": "close"}
        try:
            response = session.get(self.url, timeout=self.timeout, headers=headers)
        except requests.ConnectionError as e:
            raise ProviderUnavailable(f"{self.name}: cannot connect: {e}") from e
        response.raise_for_status()
        return response

    def reset(self) -> None:
        """Drop the session and its pooled connections."""
        if self._session is not None:
            self._session.close()
            self._session = None

    def describe(self, response: requests.Response) -> dict:
        return {
            "status_code": response.status_code,
            "bytes": len(response.content),
        }

    def close(self) -> None:
        self.reset()

    def __enter__(self) -> "HttpPing":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class NetworkBenchmarkSuite(TargetBenchmarkSuite):
    """Suite of HTTP latency benchmarks."""

    title = "HTTP LATENCY BENCHMARK"

    def __init__(self, target: Target, *args, timeout: float = DEFAULT_TIMEOUT, **kwargs):
        super().__init__(target, *args, **kwargs)
        self.timeout = timeout

    def _config(self, name: str, trials: int) -> BenchmarkConfig:
        return BenchmarkConfig(
            name=name,
            description=f"GET {self.target.url}",
            trials=trials,
            deadline_seconds=self.deadline_seconds,
            metadata={"timeout": self.timeout},
        )

    def _provider(self, persistent: bool) -> HttpPing:
        return HttpPing(
            self.target.url,
            persistent=persistent,
            timeout=self.timeout,
            name=mode_name(persistent),
        )

    def run_single(self, trials: int = 100, persistent: bool = True) -> BenchmarkResult:
        config = self._config("http_ping", trials)

        self.show_connection(f"Requests: {trials}, timeout: {self.timeout}s")
        with self._provider(persistent) as provider:
            result = self.runner.run_benchmark(provider, config)

        self.report_result(
            result,
            title="HTTP Ping Benchmark",
            subtitle=f"{self.target.url} ({mode_name(persistent)}), {trials} requests",
        )
        return result

    def compare_keep_alive(
        self,
        trials: int = 100,
        thresholds: Optional[InsightThresholds] = None,
    ) -> ComparisonReport:
        """Fresh connection per request (baseline) vs keep-alive session (variant)."""
        config = self._config("http_keep_alive", trials)
        thresholds = thresholds or make_thresholds(**PERSISTENCE_THRESHOLDS)

        self.show_connection(f"Requests: {trials} per mode, timeout: {self.timeout}s")
        with self._provider(False) as baseline, self._provider(True) as variant:
            report = self.runner.run_comparison(
                baseline, variant, config, thresholds, name="HTTP Keep-Alive"
            )

        self.report_comparison(
            report,
            title="HTTP Keep-Alive Comparison",
            subtitle=f"{self.target.url}, {trials} requests per mode",
        )
        return report

    def run(
        self,
        trials: int = 100,
        persistent: bool = True,
        compare: bool = False,
        thresholds: Optional[InsightThresholds] = None,
    ) -> Union[BenchmarkResult, ComparisonReport]:
        if compare:
            return self.compare_keep_alive(trials, thresholds=thresholds)
        return self.run_single(trials, persistent=persistent)
