"""
Caching benchmarks - Query cache bypass and cached vs uncached queries.
"""

from .benchmark import (
    CACHE_THRESHOLDS,
    CachingBenchmarkSuite,
)

__all__ = [
    "CACHE_THRESHOLDS",
    "CachingBenchmarkSuite",
]
