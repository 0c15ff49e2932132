"""Base interfaces for ledger access.

The lifecycle core consumes these; it never talks to a node directly.

Operation flow:
1. Caller builds and signs an operation (see stellar_lifecycle.signing)
2. OperationTarget.submit() returns a receipt with a handle or a rejection
3. OperationTarget.get_operation_status() is polled until terminal
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from stellar_lifecycle.fingerprint import ResourceFingerprint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerEntryInfo:
    """Result of looking up a contract-code entry.

    latest_sequence is filled when the read also reported the current
    ledger, so callers can skip a second round-trip.
    """
    present: bool
    expiry_sequence: Optional[int] = None
    latest_sequence: Optional[int] = None


@dataclass(frozen=True)
class AccountState:
    """Source account data needed to build a transaction."""
    address: str
    sequence: int


class SubmitStatus(str, Enum):
    PENDING = "pending"
    REJECTED = "rejected"


@dataclass(frozen=True)
class SubmitReceipt:
    """Synchronous answer to a submission."""
    status: SubmitStatus
    handle: Optional[str] = None
    reason: Optional[str] = None


class ReportedStatus(str, Enum):
    """Status markers as reported by a gateway or provider."""
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class StatusReport:
    """One status read for a handle."""
    status: ReportedStatus
    result: Any = None
    reason: Optional[str] = None


class OperationTarget(ABC):
    """Anything that accepts operations and answers status queries.

    Both the ledger gateway and the custodial transfer channel implement
    this, so one poller serves both.
    """

    @abstractmethod
    async def submit(self, operation: Any) -> SubmitReceipt:
        """Submit an operation.

        Returns:
            Receipt with a handle (pending) or a reason (rejected)

        Raises:
            TransportError: Network failure, outcome unknown
        """
        pass

    @abstractmethod
    async def get_operation_status(self, handle: str) -> StatusReport:
        """Read the current status of a submitted operation.

        Raises:
            TransportError: Network failure
        """
        pass


class LedgerGateway(OperationTarget):
    """Read/write access to ledger state."""

    @abstractmethod
    async def get_entry(self, fingerprint: ResourceFingerprint) -> LedgerEntryInfo:
        """Look up the contract-code entry for a fingerprint.

        Raises:
            TransportError: Network failure
        """
        pass

    @abstractmethod
    async def get_current_sequence(self) -> int:
        """Get the latest closed ledger sequence."""
        pass

    @abstractmethod
    async def get_account(self, address: str) -> AccountState:
        """Get the account used as transaction source."""
        pass

    @property
    def name(self) -> str:
        return self.__class__.__name__
