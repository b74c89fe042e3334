"""
Instrumentation module for latency benchmarking.

Provides timing utilities and tracing integrations.
"""

from .timing import (
    Clock,
    NS_PER_MS,
    NS_PER_SECOND,
    NS_PER_US,
    Timer,
    default_clock,
    ns_to_ms,
    ns_to_us,
    timed,
)

from .traces import (
    Tracer,
    TracingConfig,
)

__all__ = [
    # Timing
    "Clock",
    "NS_PER_MS",
    "NS_PER_SECOND",
    "NS_PER_US",
    "Timer",
    "default_clock",
    "ns_to_ms",
    "ns_to_us",
    "timed",
    # Tracing
    "Tracer",
    "TracingConfig",
]
