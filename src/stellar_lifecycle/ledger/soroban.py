"""Soroban RPC ledger gateway.

Talks JSON-RPC 2.0 to a Soroban RPC node over httpx.

Docs: https://developers.stellar.org/docs/data/apis/rpc/api-reference/methods
"""

import itertools
import logging
from typing import Any, Optional

import httpx
from stellar_sdk.exceptions import Ed25519PublicKeyInvalidError

from stellar_lifecycle.errors import ConfigurationError, TransportError
from stellar_lifecycle.fingerprint import ResourceFingerprint
from stellar_lifecycle.ledger import keys
from stellar_lifecycle.ledger.base import (
    AccountState,
    LedgerEntryInfo,
    LedgerGateway,
    ReportedStatus,
    StatusReport,
    SubmitReceipt,
    SubmitStatus,
)

logger = logging.getLogger(__name__)

PUBLIC_RPC_MAINNET = "https://soroban-rpc.mainnet.stellar.gateway.fm"
PUBLIC_RPC_TESTNET = "https://soroban-testnet.stellar.org"

# sendTransaction statuses
SEND_PENDING = "PENDING"
SEND_DUPLICATE = "DUPLICATE"
SEND_TRY_AGAIN_LATER = "TRY_AGAIN_LATER"
SEND_ERROR = "ERROR"

# getTransaction statuses
TX_SUCCESS = "SUCCESS"
TX_FAILED = "FAILED"
TX_NOT_FOUND = "NOT_FOUND"


class JsonRpcError(TransportError):
    """The node answered with a JSON-RPC error object."""

    def __init__(self, method: str, code: Optional[int], message: str):
        super().__init__(f"{method} error {code}: {message}")
        self.method = method
        self.code = code
        self.rpc_message = message


class SorobanRpcGateway(LedgerGateway):
    """Ledger gateway backed by a Soroban RPC node.

    A fresh AsyncClient is opened per call, so one gateway instance can be
    shared by any number of concurrent workflows.
    """

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        testnet: bool = True,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.rpc_url = rpc_url or (PUBLIC_RPC_TESTNET if testnet else PUBLIC_RPC_MAINNET)
        self.timeout = timeout
        self._transport = transport
        self._ids = itertools.count(1)

    async def _call(self, method: str, params: Optional[dict] = None) -> Any:
        """Make a JSON-RPC call and return its result member.

        Raises:
            TransportError: Network failure, non-200 response or bad JSON
            JsonRpcError: Node returned an error object
        """
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or {},
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.rpc_url, json=payload)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} request failed: {e}") from e

        if response.status_code != 200:
            raise TransportError(f"{method} returned HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise TransportError(f"{method} returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise TransportError(f"{method} returned {type(data).__name__}, expected an object")

        if "error" in data:
            error = data["error"] or {}
            raise JsonRpcError(method, error.get("code"), error.get("message", "unknown error"))

        return data.get("result") or {}

    async def get_entry(self, fingerprint: ResourceFingerprint) -> LedgerEntryInfo:
        result = await self._call(
            "getLedgerEntries",
            {"keys": [keys.contract_code_key(fingerprint).to_xdr()]},
        )
        latest = result.get("latestLedger")
        latest = int(latest) if latest is not None else None
        entries = result.get("entries") or []

        if not entries:
            logger.debug(f"No contract code entry for {fingerprint.short}")
            return LedgerEntryInfo(present=False, latest_sequence=latest)

        live_until = entries[0].get("liveUntilLedgerSeq")
        return LedgerEntryInfo(
            present=True,
            expiry_sequence=int(live_until) if live_until is not None else 0,
            latest_sequence=latest,
        )

    async def get_current_sequence(self) -> int:
        result = await self._call("getLatestLedger")
        return int(result["sequence"])

    async def get_account(self, address: str) -> AccountState:
        try:
            key = keys.account_key(address).to_xdr()
        except Ed25519PublicKeyInvalidError as e:
            raise ConfigurationError(f"Invalid source account {address}: {e}") from e

        result = await self._call("getLedgerEntries", {"keys": [key]})
        entries = result.get("entries") or []
        if not entries:
            raise ConfigurationError(f"Account {address} not found on ledger (unfunded?)")

        try:
            sequence = keys.account_sequence(entries[0]["xdr"])
        except (KeyError, ValueError) as e:
            raise TransportError(f"getLedgerEntries returned an unreadable account entry: {e}") from e

        return AccountState(address=address, sequence=sequence)

    async def submit(self, operation: Any) -> SubmitReceipt:
        """Send a signed transaction envelope.

        PENDING and DUPLICATE both mean the transaction is in flight under
        its hash. ERROR and TRY_AGAIN_LATER are synchronous refusals.
        """
        envelope = getattr(operation, "envelope", operation)

        try:
            result = await self._call("sendTransaction", {"transaction": envelope})
        except JsonRpcError as e:
            # Malformed envelopes are refused with an invalid-params error
            return SubmitReceipt(status=SubmitStatus.REJECTED, reason=e.rpc_message)

        status = result.get("status", "")
        tx_hash = result.get("hash")

        if status in (SEND_PENDING, SEND_DUPLICATE) and tx_hash:
            logger.info(f"Transaction {tx_hash} accepted ({status})")
            return SubmitReceipt(status=SubmitStatus.PENDING, handle=tx_hash)

        reason = result.get("errorResultXdr") or status or "unknown sendTransaction status"
        logger.warning(f"Transaction refused ({status}): {reason}")
        return SubmitReceipt(status=SubmitStatus.REJECTED, handle=None, reason=reason)

    async def get_operation_status(self, handle: str) -> StatusReport:
        result = await self._call("getTransaction", {"hash": handle})
        status = result.get("status")

        if status == TX_SUCCESS:
            return StatusReport(
                status=ReportedStatus.SUCCESS,
                result={
                    "hash": handle,
                    "ledger": result.get("ledger"),
                    "result_xdr": result.get("resultXdr"),
                },
            )

        if status == TX_FAILED:
            return StatusReport(
                status=ReportedStatus.FAILED,
                reason=result.get("resultXdr") or "Transaction failed",
            )

        # NOT_FOUND: not yet visible to the node
        return StatusReport(status=ReportedStatus.PENDING)
