"""Simulated signer for dry-run mode and tests."""

import base64
import hashlib
import logging

from stellar_sdk import Keypair

from stellar_lifecycle.fingerprint import ResourceFingerprint
from stellar_lifecycle.ledger.base import AccountState
from stellar_lifecycle.signing.base import OperationKind, OperationSigner, SignedOperation

logger = logging.getLogger(__name__)


class SimulatedSigner(OperationSigner):
    """Produces fake envelopes that the simulated gateway understands.

    The account is a real keypair derived from the seed, so its address is a
    valid strkey; nothing is ever signed with it.
    """

    def __init__(self, seed: str = "simulated-admin"):
        keypair = Keypair.from_raw_ed25519_seed(hashlib.sha256(seed.encode()).digest())
        self._address = keypair.public_key

    @property
    def public_key(self) -> str:
        return self._address

    def _envelope(self, kind: OperationKind, account: AccountState, body: bytes) -> str:
        payload = f"{kind.value}:{account.address}:{account.sequence + 1}:".encode() + body
        return base64.b64encode(payload).decode()

    async def build_install(
        self, account: AccountState, resource_bytes: bytes
    ) -> SignedOperation:
        fingerprint = ResourceFingerprint.compute(resource_bytes)
        logger.info(f"[SIMULATED] Signing install of {fingerprint.short}")
        return SignedOperation(
            kind=OperationKind.INSTALL,
            envelope=self._envelope(OperationKind.INSTALL, account, fingerprint.digest),
            fingerprint=fingerprint,
        )

    async def build_restore(
        self, account: AccountState, fingerprint: ResourceFingerprint
    ) -> SignedOperation:
        logger.info(f"[SIMULATED] Signing restore of {fingerprint.short}")
        return SignedOperation(
            kind=OperationKind.RESTORE,
            envelope=self._envelope(OperationKind.RESTORE, account, fingerprint.digest),
            fingerprint=fingerprint,
        )

    async def build_extend_ttl(
        self, account: AccountState, fingerprint: ResourceFingerprint, extend_to: int
    ) -> SignedOperation:
        logger.info(f"[SIMULATED] Signing TTL extension of {fingerprint.short} to {extend_to}")
        return SignedOperation(
            kind=OperationKind.EXTEND_TTL,
            envelope=self._envelope(OperationKind.EXTEND_TTL, account, fingerprint.digest),
            fingerprint=fingerprint,
            extend_to=extend_to,
        )
