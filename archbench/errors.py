"""
Error taxonomy for the benchmark harness.

Statistic and artifact errors are raised where they happen; the harness wraps
whatever aborts an evaluation in an EvaluationError that names the
architecture and the run.
"""

from typing import Optional


class BenchmarkError(Exception):
    """Base exception for harness errors."""
    pass


class InvalidObservation(BenchmarkError, ValueError):
    """Raised when a non-numeric, NaN or infinite value is fed to a median."""
    pass


class EmptyStream(BenchmarkError):
    """Raised when a median is queried before any observation was added."""
    pass


class ArtifactError(BenchmarkError):
    """Base exception for output artifact errors."""

    def __init__(self, message: str, path: Optional[str] = None, line_number: Optional[int] = None):
        super().__init__(message)
        self.path = path
        self.line_number = line_number


class MalformedArtifact(ArtifactError):
    """Raised when an artifact line has no parseable trailing numeric field."""
    pass


class EmptyArtifact(ArtifactError):
    """Raised when an artifact holds no records."""
    pass


class RunFailure(BenchmarkError):
    """Raised when an architecture run fails or reports an invalid duration."""
    pass


class RunTimeout(RunFailure):
    """
    Raised when a run exceeds the configured bound.

    Attributes:
        abandoned: True if the run could not be stopped and may still be
            writing artifacts or touching external state
    """

    def __init__(self, message: str, abandoned: bool = False):
        super().__init__(message)
        self.abandoned = abandoned


class ResetFailure(BenchmarkError):
    """
    Raised when external run state could not be reset.

    Attributes:
        run_error: The error the run itself failed with before the reset,
            if any
    """

    def __init__(self, message: str, run_error: Optional[BaseException] = None):
        super().__init__(message)
        self.run_error = run_error


class EvaluationError(BenchmarkError):
    """
    Raised by the harness when an evaluation is aborted.

    Attributes:
        architecture: Name of the evaluated architecture
        run_id: Index of the failing timed run, None for the warm-up run
        cause: The underlying error
    """

    def __init__(self, architecture: str, run_id: Optional[int], cause: BaseException):
        self.architecture = architecture
        self.run_id = run_id
        self.cause = cause
        stage = "warm-up run" if run_id is None else f"run {run_id}"
        message = f"{architecture}: {stage} failed: {cause}"
        run_error = getattr(cause, "run_error", None)
        if run_error is not None:
            message += f" (after the run failed: {type(run_error).__name__}: {run_error})"
        super().__init__(message)

    @property
    def is_fatal(self) -> bool:
        """
        Whether no further evaluation may safely follow this one.

        True when the run state could not be reset, or when a timed-out run
        is still going and may write into the next evaluation's state.
        """
        if isinstance(self.cause, ResetFailure):
            return True
        return isinstance(self.cause, RunTimeout) and self.cause.abandoned
