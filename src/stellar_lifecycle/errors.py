"""Error taxonomy for resource provisioning and operation confirmation.

ConfigurationError   missing credential or bad input, raised before any network call
SubmissionRejected   the gateway refused the operation synchronously
TransportError       a single network call failed; the call may be retried
OperationFailed      the gateway reported a definitive failure
OperationTimedOut    the polling budget ran out; says nothing about the operation
LockTimeoutError     another install-side operation held the resource too long
"""

import logging
from contextlib import asynccontextmanager
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    """Workflow phase that produced an error."""
    CHECK = "check"
    INSTALL = "install"
    CONFIRM = "confirm"
    SUBMIT = "submit"
    POLL = "poll"


class LifecycleError(Exception):
    """Base class for all lifecycle errors."""

    def __init__(self, message: str, phase: Optional[Phase] = None):
        super().__init__(message)
        self.message = message
        self.phase = phase

    def __str__(self) -> str:
        if self.phase:
            return f"[{self.phase.value}] {self.message}"
        return self.message


class ConfigurationError(LifecycleError):
    """Raised when a required credential or input is missing."""
    pass


class SubmissionRejected(LifecycleError):
    """Raised when the gateway refuses an operation at submission time."""

    def __init__(self, reason: str, phase: Optional[Phase] = None):
        super().__init__(f"Submission rejected: {reason}", phase)
        self.reason = reason


class TransportError(LifecycleError):
    """Raised when a single network call fails."""
    pass


class OperationFailed(LifecycleError):
    """Raised when the gateway reports a definitive failure."""

    def __init__(self, reason: str, phase: Optional[Phase] = None):
        super().__init__(f"Operation failed: {reason}", phase)
        self.reason = reason


class OperationTimedOut(LifecycleError):
    """Raised when polling gives up; the operation may still complete."""

    def __init__(self, handle_id: str, phase: Optional[Phase] = None):
        super().__init__(f"Still pending, check again later: {handle_id}", phase)
        self.handle_id = handle_id


class LockTimeoutError(LifecycleError):
    """Raised when a resource stays busy past the gate timeout."""

    def __init__(self, key: str, timeout: Optional[float], operation: str):
        super().__init__(f"Resource {key[:16]} busy for {timeout}s, {operation} not started")
        self.key = key
        self.timeout = timeout
        self.operation = operation


@asynccontextmanager
async def annotate_phase(phase: Phase):
    """Tag lifecycle errors raised inside the block with the given phase.

    Errors that already carry a phase keep it.
    """
    try:
        yield
    except LifecycleError as e:
        if e.phase is None:
            e.phase = phase
        logger.debug(f"{type(e).__name__} during {phase.value}: {e.message}")
        raise
