"""
Persistence benchmarks - Pooled vs non-persistent connections.
"""

from .benchmark import (
    PERSISTENCE_THRESHOLDS,
    RECONNECT_TRIALS,
    PersistenceBenchmarkSuite,
    mode_name,
)

__all__ = [
    "PERSISTENCE_THRESHOLDS",
    "RECONNECT_TRIALS",
    "PersistenceBenchmarkSuite",
    "mode_name",
]
