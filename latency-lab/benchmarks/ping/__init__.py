"""
Ping benchmarks - Round-trip latency of a trivial query.
"""

from .benchmark import (
    DatabasePing,
    PingBenchmarkSuite,
    create_database_engine,
    safe_url,
)

__all__ = [
    "DatabasePing",
    "PingBenchmarkSuite",
    "create_database_engine",
    "safe_url",
]
