"""Exceptions raised by the screening core."""

from lesion_screener.domain.sessions import ErrorKind, SessionPhase


class ScreeningError(Exception):
    """Base error carrying the named failure condition."""

    kind: ErrorKind

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.kind.value.replace("_", " "))


class IllegalTransition(ScreeningError):
    """An operation was called in a phase that does not allow it."""

    kind = ErrorKind.ILLEGAL_TRANSITION

    def __init__(self, operation: str, phase: SessionPhase) -> None:
        super().__init__(f"{operation} is not allowed in phase {phase.value}")
        self.operation = operation
        self.phase = phase


class SessionBusy(ScreeningError):
    """An analysis is already in flight."""

    kind = ErrorKind.SESSION_BUSY


class InvalidImage(ScreeningError):
    """The image is empty or was rejected by the backend."""

    kind = ErrorKind.INVALID_IMAGE


class BackendUnavailable(ScreeningError):
    """The inference backend failed or returned unusable output."""

    kind = ErrorKind.BACKEND_UNAVAILABLE


class BackendTimeout(ScreeningError):
    """The inference backend did not answer in time."""

    kind = ErrorKind.BACKEND_TIMEOUT


class NoScores(ScreeningError):
    """Calibration was requested for an empty score set."""

    kind = ErrorKind.NO_SCORES


class DegenerateScores(ScreeningError):
    """Scores cannot be normalized into a distribution."""

    kind = ErrorKind.DEGENERATE_SCORES


class AssemblyFailed(ScreeningError):
    """A report could not be assembled."""

    kind = ErrorKind.ASSEMBLY_FAILED


class AnalysisCancelled(Exception):
    """A backend request was abandoned because its cancel token fired."""
