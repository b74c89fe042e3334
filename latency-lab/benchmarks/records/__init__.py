"""
Record benchmarks - CRUD latency over a scratch table.
"""

from .benchmark import (
    RECORD_OPERATIONS,
    BulkInsertRecords,
    DeleteRecords,
    FindRecords,
    InsertRecords,
    QueryRecords,
    RecordOperation,
    RecordStore,
    RecordsBenchmarkSuite,
    UpdateRecords,
    benchmark_records,
    make_row,
    parse_operations,
)

__all__ = [
    "RECORD_OPERATIONS",
    "BulkInsertRecords",
    "DeleteRecords",
    "FindRecords",
    "InsertRecords",
    "QueryRecords",
    "RecordOperation",
    "RecordStore",
    "RecordsBenchmarkSuite",
    "UpdateRecords",
    "benchmark_records",
    "make_row",
    "parse_operations",
]
