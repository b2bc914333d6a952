"""Exception types raised by the function agent.

HTTP-facing code maps these to status codes; queue-facing code lets them
propagate so the Functions host applies its retry and poison-queue policy.
"""

from __future__ import annotations


class FunctionAgentError(Exception):
    """Base class for errors raised by this package."""


class ConfigurationError(FunctionAgentError):
    """A required setting is missing or cannot be parsed."""


class PlatformError(FunctionAgentError):
    """The Foundry Agent Service (or its credential) returned an error."""


class RunFailedError(PlatformError):
    """An agent run finished in a terminal state other than ``completed``."""

    def __init__(self, run_id: str, status: str, last_error: object | None = None) -> None:
        message = f"Run {run_id} ended with status {status}"
        if last_error:
            message = f"{message}: {last_error}"
        super().__init__(message)
        self.run_id = run_id
        self.status = status
        self.last_error = last_error


class RunTimeoutError(PlatformError):
    """An agent run did not reach a terminal state within the poll budget."""

    def __init__(self, run_id: str, timeout_seconds: float) -> None:
        super().__init__(f"Run {run_id} did not finish within {timeout_seconds:g}s")
        self.run_id = run_id
        self.timeout_seconds = timeout_seconds


class IncomingRequestError(ValueError):
    """Raised when an incoming HTTP request cannot be parsed or validated."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code


class QueueMessageError(ValueError):
    """Raised when a function-call queue message is malformed."""
