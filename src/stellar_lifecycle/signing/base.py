"""Base interfaces for building and signing admin operations.

Signing flow:
1. Fetch the admin source account from the gateway
2. Signer builds the transaction for the requested operation kind
3. Signer prepares (simulates) and signs it with the admin key
4. The signed envelope is handed to the submitter

Implementations never expose the secret; only signed envelopes leave them.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from stellar_lifecycle.fingerprint import ResourceFingerprint
from stellar_lifecycle.ledger.base import AccountState

logger = logging.getLogger(__name__)


class OperationKind(str, Enum):
    """Admin operations on contract code."""
    INSTALL = "install"         # upload contract code
    RESTORE = "restore"         # restore archived contract code
    EXTEND_TTL = "extend_ttl"   # extend the code entry's TTL


@dataclass(frozen=True)
class SignedOperation:
    """A signed, ready-to-submit transaction envelope."""
    kind: OperationKind
    envelope: str  # base64 TransactionEnvelope XDR
    fingerprint: Optional[ResourceFingerprint] = None
    extend_to: Optional[int] = None


class OperationSigner(ABC):
    """Builds and signs admin operations."""

    @property
    @abstractmethod
    def public_key(self) -> str:
        """Address of the admin account (G...)."""
        pass

    @abstractmethod
    async def build_install(
        self, account: AccountState, resource_bytes: bytes
    ) -> SignedOperation:
        """Build and sign an upload of resource_bytes."""
        pass

    @abstractmethod
    async def build_restore(
        self, account: AccountState, fingerprint: ResourceFingerprint
    ) -> SignedOperation:
        """Build and sign a restore of an archived code entry."""
        pass

    @abstractmethod
    async def build_extend_ttl(
        self, account: AccountState, fingerprint: ResourceFingerprint, extend_to: int
    ) -> SignedOperation:
        """Build and sign a TTL extension for a code entry."""
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(account={self.public_key[:8]}...)"
