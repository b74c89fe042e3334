"""Tests for timing utilities."""

from instrumentation.timing import (
    NS_PER_MS,
    Timer,
    default_clock,
    ns_to_ms,
    ns_to_us,
    timed,
)


def test_default_clock_is_monotonic():
    first = default_clock()
    second = default_clock()
    assert second >= first


def test_unit_conversions():
    assert ns_to_ms(2_500_000) == 2.5
    assert ns_to_us(2_500) == 2.5


def test_timer_uses_injected_clock(clock):
    timer = Timer("t", clock=clock).start()
    assert timer.running
    clock.advance(3 * NS_PER_MS)
    timer.stop()

    assert not timer.running
    assert timer.elapsed_ns == 3 * NS_PER_MS
    assert timer.elapsed_ms == 3.0


def test_timer_elapsed_never_negative(clock):
    timer = Timer(clock=clock).start()
    clock.now -= 10
    timer.stop()
    assert timer.elapsed_ns == 0


def test_timer_reads_clock_while_running(clock):
    timer = Timer(clock=clock).start()
    clock.advance(500)
    assert timer.elapsed_ns == 500


def test_timed_context_manager(clock):
    with timed("block", clock=clock) as timer:
        clock.advance(42)
    assert timer.name == "block"
    assert timer.elapsed_ns == 42


def test_timed_stops_on_error(clock):
    try:
        with timed(clock=clock) as timer:
            clock.advance(7)
            raise ValueError("nope")
    except ValueError:
        pass
    assert not timer.running
    assert timer.elapsed_ns == 7
