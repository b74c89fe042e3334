"""Tests for the HTTP provider and suite, with mocked sessions."""

from unittest.mock import MagicMock

import pytest
import requests

from benchmarks.network import HttpPing, NetworkBenchmarkSuite
from harness.errors import InvalidConfiguration, ProviderUnavailable, SampleFailure
from harness.reporter import ConsoleReporter
from harness.runner import BenchmarkResult, BenchmarkRunner, ComparisonReport
from harness.sampler import Sampler
from instrumentation.traces import Tracer

URL = "http://localhost:8080/health"


def make_response(status_code=200, content=b'{"ok": true}'):
    response = MagicMock()
    response.status_code = status_code
    response.content = content
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} error")
    return response


@pytest.fixture()
def session():
    session = MagicMock()
    session.get.return_value = make_response()
    return session


@pytest.fixture()
def factory(session):
    return MagicMock(return_value=session)


class TestHttpPing:
    def test_persistent_reuses_session(self, session, factory):
        ping = HttpPing(URL, persistent=True, timeout=2.0, session_factory=factory)
        ping.invoke()
        ping.invoke()

        assert factory.call_count == 1
        session.get.assert_called_with(URL, timeout=2.0, headers={})
        session.close.assert_not_called()

    def test_non_persistent_opens_fresh_connection_each_call(self, session, factory):
        ping = HttpPing(URL, persistent=False, session_factory=factory)
        ping.prepare()
        ping.invoke()
        ping.prepare()
        ping.invoke()

        assert factory.call_count == 2
        assert session.close.call_count == 1
        session.get.assert_called_with(URL, timeout=5.0, headers={"Connection": "close"})

    def test_persistent_prepare_keeps_session(self, session, factory):
        ping = HttpPing(URL, persistent=True, session_factory=factory)
        ping.invoke()
        ping.prepare()
        ping.invoke()

        assert factory.call_count == 1
        session.close.assert_not_called()

    def test_session_turnover_runs_off_the_clock(self, clock, session, factory):
        session.close.side_effect = lambda: clock.advance(1_000_000)
        factory.side_effect = lambda: (clock.advance(1_000_000), session)[1]

        def get(*args, **kwargs):
            clock.advance(500)
            return make_response()

        session.get.side_effect = get
        ping = HttpPing(URL, persistent=False, session_factory=factory)

        trial_set = Sampler(clock=clock).sample(ping, 3, prepare=ping.prepare)

        assert list(trial_set.samples) == [500, 500, 500]
        assert factory.call_count == 3
        assert session.close.call_count == 2

    def test_reset_drops_session(self, session, factory):
        ping = HttpPing(URL, session_factory=factory)
        ping.invoke()
        ping.reset()
        ping.invoke()

        assert factory.call_count == 2
        session.close.assert_called_once()

    def test_describe(self, session, factory):
        ping = HttpPing(URL, session_factory=factory)
        assert ping.describe(ping.invoke()) == {"status_code": 200, "bytes": 12}

    def test_connection_error_is_provider_unavailable(self, session, factory):
        session.get.side_effect = requests.ConnectionError("refused")
        ping = HttpPing(URL, session_factory=factory)

        with pytest.raises(ProviderUnavailable):
            Sampler().sample(ping, 3)

    def test_http_error_is_sample_failure(self, session, factory):
        session.get.return_value = make_response(503)
        ping = HttpPing(URL, session_factory=factory)

        with pytest.raises(SampleFailure) as excinfo:
            Sampler().sample(ping, 3)
        assert excinfo.value.trial_index == 0

    def test_read_timeout_is_sample_failure(self, session, factory):
        session.get.side_effect = requests.ReadTimeout("slow")
        ping = HttpPing(URL, session_factory=factory)

        with pytest.raises(SampleFailure):
            Sampler().sample(ping, 1)

    @pytest.mark.parametrize("url", ["sqlite:///x.db", "not a url"])
    def test_rejects_non_http_urls(self, url):
        with pytest.raises(InvalidConfiguration):
            HttpPing(url)

    def test_rejects_bad_timeout(self):
        with pytest.raises(InvalidConfiguration):
            HttpPing(URL, timeout=0)


class TestNetworkSuite:
    @pytest.fixture(autouse=True)
    def patch_session(self, monkeypatch, session):
        monkeypatch.setattr(requests, "Session", MagicMock(return_value=session))

    def make_suite(self, http_target):
        return NetworkBenchmarkSuite(
            http_target,
            runner=BenchmarkRunner(tracer=Tracer(), verbose=False),
            console=ConsoleReporter(use_color=False),
            timeout=1.0,
        )

    def test_single(self, http_target, session, capsys):
        result = self.make_suite(http_target).run(trials=4)

        assert isinstance(result, BenchmarkResult)
        assert result.summary.count == 4
        assert result.cold_start.metadata == {"status_code": 200, "bytes": 12}
        # cold start plus four trials
        assert session.get.call_count == 5
        assert "HTTP Ping Benchmark" in capsys.readouterr().out

    def test_compare(self, http_target, capsys):
        report = self.make_suite(http_target).run(trials=3, compare=True)

        assert isinstance(report, ComparisonReport)
        assert report.baseline.label == "Non-Persistent"
        assert report.variant.label == "Persistent"
        assert report.reconnect is None
        assert "HTTP Keep-Alive Comparison" in capsys.readouterr().out
