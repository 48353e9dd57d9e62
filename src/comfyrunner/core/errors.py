"""Error taxonomy for ComfyUI job runs.

Every failure of a run surfaces as a :class:`ComfyRunnerError` subclass
carrying a human-readable message.  Callers that only care whether a run
failed can catch the base class; the subclasses tell apart where it failed:

=====================  ==================================================
Error                  Raised when
=====================  ==================================================
``ValidationError``    Missing server address, malformed workflow JSON,
                       non-positive timeout, missing node parameter
``TransportError``     Reachability probe, submission or status query
                       failed at the HTTP level, or no job id returned
``ExecutionError``     The server reported an error outcome, or the job
                       completed without outputs
``JobTimeoutError``    The poll budget ran out before a terminal state
=====================  ==================================================

None of these are retried.
"""

from __future__ import annotations


class ComfyRunnerError(Exception):
    """Base class for all errors raised by a job run."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ComfyRunnerError):
    """Invalid caller input, detected before or instead of a network call."""


class TransportError(ComfyRunnerError):
    """The server could not be reached or answered with an unusable response."""


class ExecutionError(ComfyRunnerError):
    """The job reached a terminal state without usable outputs."""


class JobTimeoutError(ComfyRunnerError):
    """The job did not reach a terminal state within the time budget."""

    def __init__(self, timeout_minutes: float) -> None:
        super().__init__(f"Execution timeout after {timeout_minutes:g} minutes")
        self.timeout_minutes = timeout_minutes
