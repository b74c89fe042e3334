"""
Benchmark modules for latency testing.

Each submodule focuses on one kind of target or connection behaviour.
"""

from . import ping
from . import caching
from . import persistence
from . import records
from . import network

__all__ = [
    "ping",
    "caching",
    "persistence",
    "records",
    "network",
]
