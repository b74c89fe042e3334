"""
Record benchmarks - CRUD latency over a scratch table.

Each operation (individual inserts, chunked bulk inserts, find by id,
aggregate/filter queries, updates, deletes) is one operation provider,
so every trial is one full pass of the operation and the harness computes
the usual statistics per operation. Data the operation needs before a
trial (emptying the table, building rows, seeding rows to delete) is
prepared off the clock.
"""

import logging
import random
import string
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional, Sequence

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    delete,
    func,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import DBAPIError

from harness.errors import InvalidConfiguration, ProviderUnavailable
from harness.runner import BenchmarkConfig, BenchmarkResult
from targets import DATABASE, Target

from ..ping import create_database_engine, safe_url
from ..suite import TargetBenchmarkSuite

logger = logging.getLogger(__name__)

metadata_obj = MetaData()

benchmark_records = Table(
    "benchmark_records",
    metadata_obj,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("description", Text, nullable=True),
    Column("counter", Integer, nullable=False, default=0),
    Column("value", Float, nullable=False, default=0.0),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("metadata", JSON, nullable=True),
    Column("created_at", DateTime, nullable=True),
    Column("updated_at", DateTime, nullable=True),
)

# Rows touched per trial by find/update are capped
SAMPLE_LIMIT = 100
DELETE_BATCH = 100
QUERIES_PER_TRIAL = 6


def random_string(rng: random.Random, length: int) -> str:
    return "".join(rng.choices(string.ascii_letters + string.digits, k=length))


def make_row(rng: random.Random, prefix: str, iteration: int, index: int, tag: str) -> dict:
    """One benchmark row with randomised content."""
    now = datetime.now()
    return {
        "name": f"{prefix} {random_string(rng, 10)}",
        "description": f"This is a test record for benchmarking database performance {random_string(rng, 20)}",
        "counter": rng.randint(1, 1000),
        "value": rng.randint(1, 1000) / 100,
        "is_active": rng.random() < 0.5,
        "metadata": {
            "iteration": iteration,
            "record": index,
            "tags": ["test", "benchmark", tag],
            "timestamp": int(now.timestamp()),
        },
        "created_at": now,
        "updated_at": now,
    }


class RecordStore:
    """The scratch table on one target, reached through a pooled engine."""

    def __init__(self, target: Target, table: Table = benchmark_records):
        if target.kind != DATABASE:
            raise InvalidConfiguration(f"Target {target.name!r} is not a database target")
        self.target = target
        self.table = table
        self.engine: Engine = create_database_engine(target.url, persistent=True)

    @contextmanager
    def connect(self) -> Iterator[Connection]:
        """A connection whose statements are committed when the block exits."""
        try:
            connection = self.engine.connect()
        except DBAPIError as e:
            raise ProviderUnavailable(
                f"cannot connect to {safe_url(self.target.url)}: {e.orig}"
            ) from e
        try:
            with connection, connection.begin():
                yield connection
        except DBAPIError as e:
            if e.connection_invalidated:
                raise ProviderUnavailable(
                    f"lost connection to {safe_url(self.target.url)}: {e.orig}"
                ) from e
            raise

    @contextmanager
    def setting_up(self, step: str) -> Iterator[None]:
        """Statement failures while preparing the table abort as ProviderUnavailable."""
        try:
            yield
        except DBAPIError as e:
            raise ProviderUnavailable(
                f"cannot {step} {self.table.name} on {safe_url(self.target.url)}: {e.orig}"
            ) from e

    def create(self) -> None:
        with self.connect() as conn:
            self.table.create(conn, checkfirst=True)

    def truncate(self) -> None:
        with self.connect() as conn:
            conn.execute(delete(self.table))

    def count(self) -> int:
        with self.connect() as conn:
            return conn.execute(select(func.count()).select_from(self.table)).scalar_one()

    def ids(self) -> list[int]:
        with self.connect() as conn:
            return list(conn.execute(select(self.table.c.id).order_by(self.table.c.id)).scalars())

    def insert_many(self, rows: Sequence[dict], chunk_size: int) -> None:
        for start in range(0, len(rows), chunk_size):
            with self.connect() as conn:
                conn.execute(insert(self.table), list(rows[start:start + chunk_size]))

    def ensure_rows(self, wanted: int, rng: random.Random, chunk_size: int = 500) -> None:
        """Top the table up to ``wanted`` rows."""
        missing = wanted - self.count()
        if missing > 0:
            logger.debug("Seeding %d rows into %s", missing, self.table.name)
            rows = [make_row(rng, "Seed", 0, i, "seed") for i in range(missing)]
            self.insert_many(rows, chunk_size)

    def close(self) -> None:
        self.engine.dispose()


class RecordOperation(ABC):
    """Base class for CRUD operation providers.

    ``units`` is how many rows (or statements) one trial touches; the
    records table divides the per-trial mean by it.
    """

    key = ""
    display_name = ""

    def __init__(
        self,
        store: RecordStore,
        records: int = 100,
        chunk_size: int = 10,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.table = store.table
        self.records = records
        self.chunk_size = chunk_size
        self.rng = rng or random.Random()
        self.iteration = 0

    @property
    def name(self) -> str:
        return self.display_name

    @property
    def units(self) -> int:
        return self.records

    def setup(self) -> None:
        """One-off preparation before the batch."""

    @abstractmethod
    def invoke(self) -> int:
        """Run one full pass of the operation; returns the rows touched."""


class InsertRecords(RecordOperation):
    """``records`` individual inserts, each in its own transaction."""

    key = "insert"
    display_name = "Individual Inserts"

    def prepare(self) -> None:
        self.store.truncate()

    def invoke(self) -> int:
        for index in range(self.records):
            row = make_row(self.rng, "Benchmark Test", self.iteration, index, "insert")
            with self.store.connect() as conn:
                conn.execute(insert(self.table).values(**row))
        self.iteration += 1
        return self.records


class BulkInsertRecords(RecordOperation):
    """``records`` rows inserted ``chunk_size`` at a time."""

    key = "bulk_insert"
    display_name = "Bulk Inserts"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._rows: list[dict] = []

    def prepare(self) -> None:
        self.store.truncate()
        self._rows = [
            make_row(self.rng, "Bulk Test", self.iteration, index, "bulk")
            for index in range(self.records)
        ]

    def invoke(self) -> int:
        self.store.insert_many(self._rows, self.chunk_size)
        self.iteration += 1
        return len(self._rows)


class FindRecords(RecordOperation):
    """Primary-key lookups of random existing rows."""

    key = "find"
    display_name = "Find by ID"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._ids: list[int] = []

    @property
    def units(self) -> int:
        return min(SAMPLE_LIMIT, self.records)

    def setup(self) -> None:
        self.store.ensure_rows(self.records, self.rng)
        self._ids = self.store.ids()

    def invoke(self) -> int:
        if not self._ids:
            raise ProviderUnavailable(f"{self.name}: no records found to look up")
        found = 0
        with self.store.connect() as conn:
            for _ in range(self.units):
                record_id = self.rng.choice(self._ids)
                row = conn.execute(
                    select(self.table).where(self.table.c.id == record_id)
                ).first()
                found += row is not None
        return found


class QueryRecords(RecordOperation):
    """Count, average, sum and three filtered/ordered selects."""

    key = "query"
    display_name = "Complex Queries"

    @property
    def units(self) -> int:
        return QUERIES_PER_TRIAL

    def setup(self) -> None:
        self.store.ensure_rows(self.records, self.rng)

    def invoke(self) -> dict:
        t = self.table
        with self.store.connect() as conn:
            return {
                "count": conn.execute(select(func.count()).select_from(t)).scalar_one(),
                "avg": conn.execute(select(func.avg(t.c.counter))).scalar_one(),
                "sum": conn.execute(select(func.sum(t.c.counter))).scalar_one(),
                "active": len(conn.execute(
                    select(t).where(t.c.is_active.is_(True)).limit(100)
                ).fetchall()),
                "active_high": len(conn.execute(
                    select(t).where(t.c.counter > 500, t.c.is_active.is_(True)).limit(50)
                ).fetchall()),
                "top": len(conn.execute(
                    select(t).order_by(t.c.counter.desc()).limit(50)
                ).fetchall()),
            }


class UpdateRecords(RecordOperation):
    """Single-row updates of the first rows in the table."""

    key = "update"
    display_name = "Updates"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._ids: list[int] = []

    @property
    def units(self) -> int:
        return min(SAMPLE_LIMIT, self.records)

    def setup(self) -> None:
        self.store.ensure_rows(self.records, self.rng)
        self._ids = self.store.ids()[:self.units]

    def invoke(self) -> int:
        if not self._ids:
            raise ProviderUnavailable(f"{self.name}: no records found to update")
        for record_id in self._ids:
            with self.store.connect() as conn:
                conn.execute(
                    update(self.table)
                    .where(self.table.c.id == record_id)
                    .values(
                        counter=self.rng.randint(1, 2000),
                        value=self.rng.randint(1, 2000) / 100,
                        updated_at=datetime.now(),
                    )
                )
        return len(self._ids)


class DeleteRecords(RecordOperation):
    """Single-row deletes of rows created just before the trial."""

    key = "delete"
    display_name = "Deletes"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._ids: list[int] = []

    @property
    def units(self) -> int:
        return DELETE_BATCH

    def prepare(self) -> None:
        ids = []
        with self.store.connect() as conn:
            for index in range(DELETE_BATCH):
                row = make_row(self.rng, "Delete Test", self.iteration, index, "delete")
                result = conn.execute(insert(self.table).values(**row))
                ids.append(result.inserted_primary_key[0])
        self._ids = ids

    def invoke(self) -> int:
        for record_id in self._ids:
            with self.store.connect() as conn:
                conn.execute(delete(self.table).where(self.table.c.id == record_id))
        self.iteration += 1
        deleted = len(self._ids)
        self._ids = []
        return deleted


RECORD_OPERATIONS: dict[str, type[RecordOperation]] = {
    cls.key: cls
    for cls in (
        InsertRecords,
        BulkInsertRecords,
        FindRecords,
        QueryRecords,
        UpdateRecords,
        DeleteRecords,
    )
}


def parse_operations(operations: Optional[Sequence[str]]) -> list[str]:
    """Validate operation keys, keeping the requested order."""
    if not operations:
        return list(RECORD_OPERATIONS)
    keys = []
    for op in operations:
        key = op.strip().lower().replace("-", "_")
        if key not in RECORD_OPERATIONS:
            known = ", ".join(RECORD_OPERATIONS)
            raise InvalidConfiguration(f"Unknown record operation {op!r} (known: {known})")
        if key not in keys:
            keys.append(key)
    return keys


class RecordsBenchmarkSuite(TargetBenchmarkSuite):
    """Suite of CRUD benchmarks over the scratch table."""

    title = "DATABASE RECORDS BENCHMARK"

    def run(
        self,
        trials: int = 5,
        records: int = 100,
        chunk_size: int = 10,
        operations: Optional[Sequence[str]] = None,
        seed: Optional[int] = None,
    ) -> list[BenchmarkResult]:
        """Run every requested operation and print one row per operation."""
        keys = parse_operations(operations)
        for value, what in ((records, "Record count"), (chunk_size, "Chunk size")):
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise InvalidConfiguration(f"{what} must be a positive integer, got {value!r}")

        rng = random.Random(seed)
        store = RecordStore(self.target)
        try:
            results = self._run_operations(store, keys, trials, records, chunk_size, rng)
        finally:
            store.close()

        self._print(self.console.header(
            "Database Benchmark Results", f"Database Driver: {self.target.driver}", width=70
        ))
        self._print(self.console.records_table(results, self.target.driver))
        return results

    def _run_operations(self, store, keys, trials, records, chunk_size, rng) -> list[BenchmarkResult]:
        providers = [
            RECORD_OPERATIONS[key](store, records=records, chunk_size=chunk_size, rng=rng)
            for key in keys
        ]
        configs = [
            BenchmarkConfig(
                name=provider.display_name,
                description=f"{provider.display_name} over {store.table.name}",
                trials=trials,
                deadline_seconds=self.deadline_seconds,
                cold_start=False,
                metadata={
                    "operation": provider.key,
                    "records_per_trial": provider.units,
                    "chunk_size": chunk_size,
                },
            )
            for provider in providers
        ]

        self.show_connection(f"Records: {records}, iterations: {trials}, chunk size: {chunk_size}")
        with store.setting_up("prepare"):
            store.create()
            store.truncate()
        self._print("Cleaned up previous benchmark data")

        results = []
        for provider, config in zip(providers, configs):
            with store.setting_up("seed"):
                provider.setup()
            result = self.runner.run_benchmark(provider, config)
            results.append(result)
            if self.log is not None:
                self.log.log_result(result)
            if self.charts is not None:
                path = self.charts.latency_distribution(result)
                if path is not None:
                    self.chart_files.append(path)
        return results
