"""
Ping benchmarks - Round-trip latency of a trivial database query.

Times ``SELECT 1`` (or one row from a named table) through SQLAlchemy.
The first query runs against a fresh engine so it pays for connection
setup; every later query reuses the open connection.
"""

from typing import Any, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine, make_url
from sqlalchemy.exc import ArgumentError, DBAPIError
from sqlalchemy.pool import NullPool

from harness.compare import InsightThresholds
from harness.errors import InvalidConfiguration, ProviderUnavailable
from harness.runner import BenchmarkConfig, BenchmarkResult
from targets import DATABASE, Target

from ..suite import TargetBenchmarkSuite


def safe_url(url: str) -> str:
    """Render a database URL without its password."""
    try:
        return make_url(url).render_as_string(hide_password=True)
    except ArgumentError:
        return "<invalid url>"


def create_database_engine(url: str, persistent: bool = True) -> Engine:
    """Create an engine for a target URL.

    Persistent engines keep released connections in a pool; non-persistent
    engines (NullPool) close them, so every new session reconnects.
    """
    options: dict[str, Any] = {} if persistent else {"poolclass": NullPool}
    try:
        return create_engine(url, **options)
    except (ArgumentError, ImportError) as e:
        raise InvalidConfiguration(f"Cannot create engine for {safe_url(url)}: {e}") from e


class DatabasePing:
    """Operation provider that runs one probe query per invocation.

    The provider holds a single autocommit connection between invocations.
    ``reset()`` releases it; whether the next invocation reconnects depends
    on the engine's pool (persistent) or lack of one (non-persistent).
    """

    def __init__(
        self,
        target: Target,
        persistent: bool = True,
        no_cache: bool = False,
        table: Optional[str] = None,
        name: Optional[str] = None,
    ):
        if target.kind != DATABASE:
            raise InvalidConfiguration(f"Target {target.name!r} is not a database target")

        self.target = target
        self.persistent = persistent
        self.no_cache = no_cache and target.backend.supports_query_cache
        self.query = target.backend.probe_query(table=table, no_cache=self.no_cache)
        self.name = name or f"{target.driver} ping"
        self.engine = create_database_engine(target.url, persistent=persistent)
        self._connection: Optional[Connection] = None

    def _connect(self) -> Connection:
        if self._connection is None or self._connection.closed:
            try:
                connection = self.engine.connect()
            except DBAPIError as e:
                raise ProviderUnavailable(
                    f"{self.name}: cannot connect to {safe_url(self.target.url)}: {e.orig}"
                ) from e
            self._connection = connection.execution_options(isolation_level="AUTOCOMMIT")
        return self._connection

    def invoke(self) -> list:
        connection = self._connect()
        try:
            return connection.execute(text(self.query)).fetchall()
        except DBAPIError as e:
            if e.connection_invalidated:
                self._connection = None
                raise ProviderUnavailable(f"{self.name}: connection lost: {e.orig}") from e
            raise

    def reset(self) -> None:
        """Release the held connection (back to the pool, or closed)."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def describe(self, rows: list) -> dict:
        return {"result_count": len(rows), "query": self.query}

    def close(self) -> None:
        """Release the connection and dispose of the engine's pool."""
        self.reset()
        self.engine.dispose()

    def __enter__(self) -> "DatabasePing":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class PingBenchmarkSuite(TargetBenchmarkSuite):
    """Plain round-trip latency against one database target."""

    title = "DATABASE PING BENCHMARK"

    def run(
        self,
        trials: int = 100,
        table: Optional[str] = None,
        thresholds: Optional[InsightThresholds] = None,
    ) -> BenchmarkResult:
        config = BenchmarkConfig(
            name="ping",
            description="Round-trip latency of a trivial query",
            trials=trials,
            deadline_seconds=self.deadline_seconds,
            metadata={"table": table} if table else {},
        )

        self.show_connection(f"Queries: {trials}")
        with DatabasePing(self.target, table=table) as provider:
            result = self.runner.run_benchmark(provider, config, thresholds)

        self.report_result(
            result,
            title="Database Ping Benchmark",
            subtitle=f"{self.target.name} ({self.target.driver}), {trials} queries",
        )
        return result
