"""Error taxonomy for the benchmark harness."""

from typing import Optional


class BenchmarkError(Exception):
    """Base class for all harness errors."""

    exit_code = 1


class InvalidConfiguration(BenchmarkError):
    """Run configuration is unusable; raised before any timing begins."""

    exit_code = 2


class ProviderUnavailable(BenchmarkError):
    """The operation provider cannot be reached or reset."""

    def __init__(self, message: str, trial_index: Optional[int] = None):
        super().__init__(message)
        self.trial_index = trial_index

    def __str__(self) -> str:
        message = super().__str__()
        if self.trial_index is None:
            return message
        return f"{message} (trial {self.trial_index})"


class SampleFailure(BenchmarkError):
    """A single trial failed; the whole batch is discarded."""

    def __init__(self, label: str, trial_index: int, cause: BaseException | str):
        self.label = label
        self.trial_index = trial_index
        self.cause = cause
        super().__init__(f"{label}: trial {trial_index} failed: {cause}")
