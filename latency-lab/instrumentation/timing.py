"""
Timing utilities for latency benchmarking.

Provides a nanosecond timer and a context manager built on a
monotonic clock. The clock is injectable so tests can drive it by hand.
"""

import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

# Monotonic nanosecond clock signature
Clock = Callable[[], int]

NS_PER_MS = 1_000_000
NS_PER_US = 1_000
NS_PER_SECOND = 1_000_000_000


def default_clock() -> int:
    """High-resolution monotonic clock in nanoseconds."""
    return time.perf_counter_ns()


def ns_to_ms(ns: float) -> float:
    """Convert nanoseconds to milliseconds."""
    return ns / NS_PER_MS


def ns_to_us(ns: float) -> float:
    """Convert nanoseconds to microseconds."""
    return ns / NS_PER_US


class Timer:
    """Simple timer for manual timing control."""

    def __init__(self, name: str = "timer", clock: Optional[Clock] = None):
        self.name = name
        self.clock = clock or default_clock
        self.start_ns: int = 0
        self.end_ns: int = 0
        self._running = False

    def start(self) -> "Timer":
        """Start the timer."""
        self.start_ns = self.clock()
        self._running = True
        return self

    def stop(self) -> "Timer":
        """Stop the timer."""
        self.end_ns = self.clock()
        self._running = False
        return self

    @property
    def running(self) -> bool:
        return self._running

    @property
    def elapsed_ns(self) -> int:
        """Elapsed time in nanoseconds (never negative)."""
        end = self.end_ns if not self._running else self.clock()
        return max(0, end - self.start_ns)

    @property
    def elapsed_ms(self) -> float:
        """Elapsed time in milliseconds."""
        return ns_to_ms(self.elapsed_ns)


@contextmanager
def timed(name: str = "operation", clock: Optional[Clock] = None) -> Iterator[Timer]:
    """Context manager for timing synchronous operations.

    Usage:
        with timed("select_1") as timer:
            conn.execute(text("SELECT 1"))
        print(f"Elapsed: {timer.elapsed_ms}ms")
    """
    timer = Timer(name, clock=clock).start()
    try:
        yield timer
    finally:
        timer.stop()
