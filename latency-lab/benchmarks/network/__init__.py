"""
Network benchmarks - HTTP request latency and keep-alive.
"""

from .benchmark import (
    DEFAULT_TIMEOUT,
    HttpPing,
    NetworkBenchmarkSuite,
)

__all__ = [
    "DEFAULT_TIMEOUT",
    "HttpPing",
    "NetworkBenchmarkSuite",
]
