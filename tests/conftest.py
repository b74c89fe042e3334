"""Shared pytest fixtures for latency lab tests.

Provides a hand-driven monotonic clock, scripted fake operations and
SQLite/HTTP targets.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional, Sequence

import pytest

from harness.runner import BenchmarkRunner
from instrumentation.traces import Tracer
from targets import make_target


class FakeClock:
    """Monotonic nanosecond clock that only moves when told to."""

    def __init__(self, start: int = 1_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ns: int) -> None:
        self.now += ns


class FakeOperation:
    """Operation whose invocations take scripted durations on a FakeClock.

    ``durations`` is cycled; ``fail_at`` makes that invocation raise
    ``error``. Every call to invoke/reset/prepare is recorded.
    """

    def __init__(
        self,
        clock: FakeClock,
        durations: Sequence[int] = (1_000_000,),
        name: str = "fake",
        fail_at: Optional[int] = None,
        error: Optional[BaseException] = None,
        payload: Any = None,
        gap_ns: int = 0,
    ) -> None:
        self.clock = clock
        self.durations = list(durations)
        self.name = name
        self.fail_at = fail_at
        self.error = error or RuntimeError("boom")
        self.payload = payload if payload is not None else [(1,)]
        self.gap_ns = gap_ns
        self.calls = 0
        self.resets = 0

    def invoke(self) -> Any:
        index = self.calls
        self.calls += 1
        if self.fail_at is not None and index == self.fail_at:
            raise self.error
        self.clock.advance(self.durations[index % len(self.durations)])
        return self.payload

    def reset(self) -> None:
        self.resets += 1
        self.clock.advance(self.gap_ns)


class NoResetOperation:
    """Operation without a reset hook."""

    name = "no-reset"

    def __init__(self, clock: FakeClock, duration: int = 1_000_000) -> None:
        self.clock = clock
        self.duration = duration
        self.calls = 0

    def invoke(self) -> None:
        self.calls += 1
        self.clock.advance(self.duration)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def make_operation(clock: FakeClock):
    """Factory for FakeOperation bound to the test's clock."""

    def _factory(durations: Sequence[int] = (1_000_000,), **kwargs: Any) -> FakeOperation:
        return FakeOperation(clock, durations, **kwargs)

    return _factory


@pytest.fixture()
def runner(clock: FakeClock) -> BenchmarkRunner:
    return BenchmarkRunner(clock=clock, tracer=Tracer(), verbose=False)


@pytest.fixture()
def sqlite_target(tmp_path):
    """A file-backed SQLite target in the test's temp directory."""
    return make_target("test", f"sqlite:///{tmp_path / 'bench.db'}")


@pytest.fixture()
def read_only_sqlite_target(tmp_path):
    """An existing, empty SQLite database opened read-only."""
    path = tmp_path / "readonly.db"
    path.touch()
    return make_target("readonly", f"sqlite:///file:{path}?mode=ro&uri=true")


@pytest.fixture()
def http_target():
    return make_target("http", "http://localhost:8080/health")


@pytest.fixture()
def no_reset_operation(clock: FakeClock) -> NoResetOperation:
    return NoResetOperation(clock)


@pytest.fixture()
def read_log():
    """Read every JSON-lines record back from a results log."""
    def read(path: Path) -> list[dict]:
        if not path.exists():
            return []
        with open(path, encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]
    return read
