"""Value types shared by the provisioner, submitter and poller.

All of these are snapshots. Each status query returns a fresh instance; none
is mutated after creation.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from stellar_lifecycle.errors import ConfigurationError, OperationFailed, OperationTimedOut


@dataclass(frozen=True)
class ResourceStatus:
    """Install state of a resource as of a ledger sequence.

    When installed, expired == (ttl_remaining <= 0).
    When not installed, expired is False and ttl_remaining is None.
    """

    installed: bool
    expired: bool
    ttl_remaining: Optional[int]
    as_of_sequence: int

    @classmethod
    def absent(cls, as_of_sequence: int) -> "ResourceStatus":
        return cls(installed=False, expired=False, ttl_remaining=None, as_of_sequence=as_of_sequence)

    @classmethod
    def from_expiry(cls, expiry_sequence: int, current_sequence: int) -> "ResourceStatus":
        ttl = expiry_sequence - current_sequence
        return cls(installed=True, expired=ttl <= 0, ttl_remaining=ttl, as_of_sequence=current_sequence)

    @property
    def is_live(self) -> bool:
        return self.installed and not self.expired

    def to_dict(self) -> dict:
        return {
            "installed": self.installed,
            "expired": self.expired,
            "ttl_remaining": self.ttl_remaining,
            "as_of_sequence": self.as_of_sequence,
        }


@dataclass(frozen=True)
class OperationHandle:
    """Reference to a submitted operation. Does not imply success."""

    id: str
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class OutcomeState(str, Enum):
    """Operation state machine states."""
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


TERMINAL_STATES = frozenset({OutcomeState.SUCCEEDED, OutcomeState.FAILED, OutcomeState.TIMED_OUT})


@dataclass(frozen=True)
class OperationOutcome:
    """Result of polling an operation.

    Attributes:
        state: One of OutcomeState
        handle_id: Handle the outcome belongs to
        result: Provider result payload (Succeeded only)
        reason: Provider failure reason, verbatim (Failed only)
        attempts: Status reads it took to reach this state
    """

    state: OutcomeState
    handle_id: str
    result: Any = None
    reason: Optional[str] = None
    attempts: int = 0

    @classmethod
    def succeeded(cls, handle_id: str, result: Any = None, attempts: int = 0) -> "OperationOutcome":
        return cls(OutcomeState.SUCCEEDED, handle_id, result=result, attempts=attempts)

    @classmethod
    def failed(cls, handle_id: str, reason: str, attempts: int = 0) -> "OperationOutcome":
        return cls(OutcomeState.FAILED, handle_id, reason=reason, attempts=attempts)

    @classmethod
    def timed_out(cls, handle_id: str, attempts: int = 0) -> "OperationOutcome":
        return cls(OutcomeState.TIMED_OUT, handle_id, attempts=attempts)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def is_success(self) -> bool:
        return self.state == OutcomeState.SUCCEEDED

    def unwrap(self) -> Any:
        """Return the result, or raise for Failed/TimedOut outcomes.

        Raises:
            OperationFailed: Provider reported failure
            OperationTimedOut: Polling budget exhausted
        """
        if self.state == OutcomeState.SUCCEEDED:
            return self.result
        if self.state == OutcomeState.FAILED:
            raise OperationFailed(self.reason or "unknown failure")
        raise OperationTimedOut(self.handle_id)

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "handle_id": self.handle_id,
            "reason": self.reason,
            "attempts": self.attempts,
        }


@dataclass(frozen=True)
class PollingPolicy:
    """Attempt and interval bound for polling.

    Total wall-clock spent polling is bounded by max_attempts * interval_ms.
    """

    max_attempts: int = 30
    interval_ms: int = 2000

    def __post_init__(self):
        for name in ("max_attempts", "interval_ms"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000

    @property
    def budget_seconds(self) -> float:
        return self.max_attempts * self.interval_ms / 1000


@dataclass(frozen=True)
class ProvisionResult:
    """What ensure_installed saw and did."""

    status: ResourceStatus
    install_attempted: bool
    install_outcome: Optional[OperationOutcome] = None

    def to_dict(self) -> dict:
        return {
            "status": self.status.to_dict(),
            "install_attempted": self.install_attempted,
            "install_outcome": self.install_outcome.to_dict() if self.install_outcome else None,
        }
