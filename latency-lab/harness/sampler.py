"""
Sampling primitives: the operation contract, trial sets and cold starts.

A Sampler runs an operation a fixed number of times, one call after the
other, and records how long every call took. The Cold-Start Probe resets
the operation's provider first and times exactly one call.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol, Sequence, runtime_checkable

from instrumentation.timing import NS_PER_SECOND, Clock, default_clock, ns_to_ms, timed

from .errors import InvalidConfiguration, ProviderUnavailable, SampleFailure

logger = logging.getLogger(__name__)


@runtime_checkable
class Operation(Protocol):
    """Something invokable and timeable.

    ``invoke`` returns a payload or raises. Connection-level failures should
    be raised as ProviderUnavailable. Providers may also define ``reset()``
    (force a fresh connection/session) and ``describe(payload) -> dict``
    (result-shape metadata for cold-start reports) and ``prepare()`` (per-trial
    setup the runner calls off the clock).
    """

    name: str

    def invoke(self) -> Any:
        ...


@dataclass(frozen=True)
class TrialSet:
    """Raw samples of one batch, in execution order."""

    label: str
    samples: Sequence[int]
    started_ns: int
    finished_ns: int

    def __len__(self) -> int:
        return len(self.samples)

    @property
    def total_elapsed_ns(self) -> int:
        """Wall-clock span from the first trial's start to the last trial's end."""
        return max(0, self.finished_ns - self.started_ns)


@dataclass(frozen=True)
class ColdStartResult:
    """A single timed invocation after a forced reset."""

    label: str
    duration_ns: int
    metadata: dict = field(default_factory=dict)

    @property
    def duration_ms(self) -> float:
        return ns_to_ms(self.duration_ns)

    def to_rows(self) -> list[tuple[str, Any]]:
        """Ordered (metric, value) pairs for table rendering."""
        rows: list[tuple[str, Any]] = [
            ("Duration (ms)", round(self.duration_ms, 3)),
            ("Duration (μs)", round(self.duration_ns / 1_000, 1)),
        ]
        for key, value in self.metadata.items():
            rows.append((key.replace("_", " ").title(), value))
        return rows

    def to_record(self) -> dict:
        """Flat key/value record for log ingestion."""
        record = {
            "label": self.label,
            "duration_ns": self.duration_ns,
            "duration_ms": round(self.duration_ms, 3),
        }
        record.update(self.metadata)
        return record


def describe_payload(operation: Any, payload: Any) -> dict:
    """Result-shape metadata for a payload.

    Uses the provider's ``describe`` hook when present, otherwise reports the
    payload length for sized payloads.
    """
    describe = getattr(operation, "describe", None)
    if callable(describe):
        return dict(describe(payload))
    if payload is not None and hasattr(payload, "__len__") and not isinstance(payload, (str, bytes)):
        return {"result_count": len(payload)}
    return {}


def reset_operation(operation: Any) -> None:
    """Call the provider's reset hook, if it has one."""
    reset = getattr(operation, "reset", None)
    if not callable(reset):
        return
    try:
        reset()
    except ProviderUnavailable:
        raise
    except Exception as e:
        raise ProviderUnavailable(f"{operation.name}: reset failed: {e}") from e


class Sampler:
    """Executes an operation sequentially and records per-trial durations.

    Args:
        clock: Monotonic nanosecond clock
        deadline_seconds: Optional per-trial deadline; a slower trial fails the batch
    """

    def __init__(
        self,
        clock: Optional[Clock] = None,
        deadline_seconds: Optional[float] = None,
    ):
        if deadline_seconds is not None and deadline_seconds <= 0:
            raise InvalidConfiguration(f"Deadline must be positive, got {deadline_seconds}")
        self.clock = clock or default_clock
        self.deadline_ns = (
            int(deadline_seconds * NS_PER_SECOND) if deadline_seconds is not None else None
        )

    def sample(
        self,
        operation: Operation,
        trials: int,
        prepare: Optional[Callable[[], None]] = None,
    ) -> TrialSet:
        """Run ``operation`` exactly ``trials`` times and return the samples.

        ``prepare`` runs before every trial, off the clock. A failing trial
        aborts the batch; samples collected so far are discarded.
        """
        if isinstance(trials, bool) or not isinstance(trials, int) or trials <= 0:
            raise InvalidConfiguration(f"Trial count must be a positive integer, got {trials!r}")

        clock = self.clock
        samples: list[int] = []
        started_ns = 0
        finished_ns = 0

        for index in range(trials):
            if prepare is not None:
                try:
                    prepare()
                except ProviderUnavailable as e:
                    e.trial_index = index
                    raise
                except Exception as e:
                    raise SampleFailure(operation.name, index, e) from e

            try:
                with timed(operation.name, clock=clock) as timer:
                    operation.invoke()
            except ProviderUnavailable as e:
                e.trial_index = index
                raise
            except Exception as e:
                logger.debug("Trial %d of %s failed: %s", index, operation.name, e)
                raise SampleFailure(operation.name, index, e) from e

            if index == 0:
                started_ns = timer.start_ns
            finished_ns = timer.end_ns

            duration = timer.elapsed_ns
            if self.deadline_ns is not None and duration > self.deadline_ns:
                raise SampleFailure(
                    operation.name,
                    index,
                    f"exceeded deadline of {ns_to_ms(self.deadline_ns):.3f} ms "
                    f"({ns_to_ms(duration):.3f} ms)",
                )
            samples.append(duration)

        return TrialSet(
            label=operation.name,
            samples=samples,
            started_ns=started_ns,
            finished_ns=finished_ns,
        )

    def cold_start(self, operation: Operation) -> ColdStartResult:
        """Reset the provider, then time exactly one invocation."""
        reset_operation(operation)

        try:
            with timed(f"{operation.name} (cold start)", clock=self.clock) as timer:
                payload = operation.invoke()
        except ProviderUnavailable as e:
            e.trial_index = 0
            raise
        except Exception as e:
            raise SampleFailure(f"{operation.name} (cold start)", 0, e) from e

        duration = timer.elapsed_ns
        if self.deadline_ns is not None and duration > self.deadline_ns:
            raise SampleFailure(
                f"{operation.name} (cold start)",
                0,
                f"exceeded deadline of {ns_to_ms(self.deadline_ns):.3f} ms",
            )

        return ColdStartResult(
            label=operation.name,
            duration_ns=duration,
            metadata=describe_payload(operation, payload),
        )
