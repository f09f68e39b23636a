"""Custom exception hierarchy for LoadClimb."""

from __future__ import annotations


class LoadClimbError(Exception):
    """Base exception for all LoadClimb errors.

    All custom exceptions in LoadClimb inherit from this class, making it
    easy to catch any LoadClimb-specific error with a single except clause.
    """


class ConfigError(LoadClimbError):
    """Raised when configuration is invalid or missing.

    Examples:
        - An environment variable has a non-numeric value.
        - A timeout is zero or negative.
    """


class EngineError(LoadClimbError):
    """Raised when the engine fails for a reason that is not a request outcome.

    Request failures and timeouts are reported through the failure signals
    and never surface as ``EngineError``.
    """


class UnexpectedStatusError(LoadClimbError):
    """Ordinary failure for a response whose status is not 200.

    Attributes:
        status: HTTP status code returned by the target.
        url: Target URL of the request.
    """

    def __init__(self, status: int, url: str) -> None:
        super().__init__(f"unexpected status code: {status}")
        self.status = status
        self.url = url


class RunCancelledError(LoadClimbError):
    """Terminal outcome of a run stopped from outside the engine.

    Attributes:
        reason: ``"interrupted"`` for a stop request or signal,
            ``"deadline exceeded"`` when the run deadline expired.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(f"run cancelled: {reason}")
        self.reason = reason


def describe_error(exc: BaseException) -> str:
    """Return a one-line description of ``exc`` for logs and terminal output.

    Falls back to the exception class name when the message is empty, as it
    is for a bare ``TimeoutError``.
    """
    return str(exc) or type(exc).__name__
