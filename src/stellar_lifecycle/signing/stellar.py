"""Admin signer backed by stellar-sdk.

Builds uploadContractWasm / restoreFootprint / extendFootprintTtl
transactions, prepares them through Soroban simulation (fills the footprint
and resource fee) and signs with the admin keypair.

WARNING: The admin secret is held in memory. Use it for install operations only.
"""

import logging

from stellar_sdk import Account, Keypair, SorobanDataBuilder, SorobanServerAsync, TransactionBuilder
from stellar_sdk.exceptions import BaseRequestError, PrepareTransactionException

from stellar_lifecycle.errors import ConfigurationError, SubmissionRejected, TransportError
from stellar_lifecycle.fingerprint import ResourceFingerprint
from stellar_lifecycle.ledger import keys
from stellar_lifecycle.ledger.base import AccountState
from stellar_lifecycle.signing.base import OperationKind, OperationSigner, SignedOperation

logger = logging.getLogger(__name__)


class StellarSdkSigner(OperationSigner):
    """Signs admin operations with a secret seed."""

    def __init__(
        self,
        secret: str,
        rpc_url: str,
        network_passphrase: str,
        install_fee: int = 10_000_000,
        ttl_bump_fee: int = 10_000,
        tx_timeout: int = 300,
    ):
        try:
            self._keypair = Keypair.from_secret(secret)
        except ValueError as e:
            raise ConfigurationError(f"Invalid admin secret: {e}") from e

        self.rpc_url = rpc_url
        self.network_passphrase = network_passphrase
        self.install_fee = install_fee
        self.ttl_bump_fee = ttl_bump_fee
        self.tx_timeout = tx_timeout

    @property
    def public_key(self) -> str:
        return self._keypair.public_key

    def _builder(self, account: AccountState, fee: int) -> TransactionBuilder:
        return TransactionBuilder(
            source_account=Account(account.address, account.sequence),
            network_passphrase=self.network_passphrase,
            base_fee=fee,
        )

    async def _prepare_and_sign(self, transaction, kind: OperationKind) -> str:
        """Simulate, assemble and sign. Returns the envelope XDR."""
        try:
            async with SorobanServerAsync(self.rpc_url) as server:
                prepared = await server.prepare_transaction(transaction)
        except PrepareTransactionException as e:
            raise SubmissionRejected(f"{kind.value} simulation failed: {e}") from e
        except BaseRequestError as e:
            raise TransportError(f"{kind.value} simulation request failed: {e}") from e

        prepared.sign(self._keypair)
        return prepared.to_xdr()

    async def build_install(
        self, account: AccountState, resource_bytes: bytes
    ) -> SignedOperation:
        transaction = (
            self._builder(account, self.install_fee)
            .append_upload_contract_wasm_op(contract=resource_bytes)
            .set_timeout(self.tx_timeout)
            .build()
        )
        envelope = await self._prepare_and_sign(transaction, OperationKind.INSTALL)
        return SignedOperation(
            kind=OperationKind.INSTALL,
            envelope=envelope,
            fingerprint=ResourceFingerprint.compute(resource_bytes),
        )

    async def build_restore(
        self, account: AccountState, fingerprint: ResourceFingerprint
    ) -> SignedOperation:
        soroban_data = (
            SorobanDataBuilder()
            .set_read_write([keys.contract_code_key(fingerprint)])
            .build()
        )
        transaction = (
            self._builder(account, self.install_fee)
            .append_restore_footprint_op()
            .set_soroban_data(soroban_data)
            .set_timeout(self.tx_timeout)
            .build()
        )
        envelope = await self._prepare_and_sign(transaction, OperationKind.RESTORE)
        return SignedOperation(kind=OperationKind.RESTORE, envelope=envelope, fingerprint=fingerprint)

    async def build_extend_ttl(
        self, account: AccountState, fingerprint: ResourceFingerprint, extend_to: int
    ) -> SignedOperation:
        soroban_data = (
            SorobanDataBuilder()
            .set_read_only([keys.contract_code_key(fingerprint)])
            .build()
        )
        transaction = (
            self._builder(account, self.ttl_bump_fee)
            .append_extend_footprint_ttl_op(extend_to=extend_to)
            .set_soroban_data(soroban_data)
            .set_timeout(self.tx_timeout)
            .build()
        )
        envelope = await self._prepare_and_sign(transaction, OperationKind.EXTEND_TTL)
        return SignedOperation(
            kind=OperationKind.EXTEND_TTL,
            envelope=envelope,
            fingerprint=fingerprint,
            extend_to=extend_to,
        )
