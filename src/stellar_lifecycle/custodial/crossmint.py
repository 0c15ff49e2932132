"""Crossmint custodial wallet transfers.

Docs: https://docs.crossmint.com/api-reference/wallets
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import quote

import httpx

from stellar_lifecycle.errors import SubmissionRejected, TransportError
from stellar_lifecycle.ledger.base import (
    OperationTarget,
    ReportedStatus,
    StatusReport,
    SubmitReceipt,
    SubmitStatus,
)
from stellar_lifecycle.lifecycle.models import OperationHandle

logger = logging.getLogger(__name__)

STAGING_API_BASE = "https://staging.crossmint.com/api"
DEFAULT_API_VERSION = "2025-06-09"


@dataclass(frozen=True)
class TransferRequest:
    """Token transfer out of a custodial wallet."""
    token_locator: str              # e.g. "stellar:xlm"
    recipient: str
    amount: str
    extra: dict = field(default_factory=dict)

    def to_params(self) -> dict:
        return {"recipient": self.recipient, "amount": self.amount, **self.extra}


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.reason_phrase or f"HTTP {response.status_code}"
    if isinstance(data, dict):
        message = data.get("message") or data.get("error")
        if isinstance(message, dict):
            message = message.get("message")
        if message:
            return str(message)
    return response.reason_phrase or f"HTTP {response.status_code}"


def _json_object(response: httpx.Response, what: str) -> dict[str, Any]:
    """Decode a success body that must be a JSON object.

    Raises:
        TransportError: Body is not JSON, or not an object
    """
    try:
        data = response.json()
    except ValueError as e:
        raise TransportError(f"Crossmint {what} returned invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise TransportError(f"Crossmint {what} returned {type(data).__name__}, expected an object")
    return data


class CrossmintClient:
    """Server-side Crossmint wallets API client."""

    def __init__(
        self,
        api_key: str,
        api_base: Optional[str] = None,
        api_version: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize client.

        Args:
            api_key: Crossmint server API key
            api_base: Base URL override (defaults to staging)
            api_version: API version path segment
            timeout: Request timeout in seconds
            transport: httpx transport override
        """
        self.api_key = api_key
        self.api_base = (api_base or STAGING_API_BASE).rstrip("/")
        self.api_version = api_version or DEFAULT_API_VERSION
        self.timeout = timeout
        self._transport = transport

    def _wallet_url(self, wallet_locator: str, *parts: str) -> str:
        path = "/".join(quote(p, safe="") for p in parts)
        return f"{self.api_base}/{self.api_version}/wallets/{quote(wallet_locator, safe='')}/{path}"

    async def _request(self, method: str, url: str, json: Optional[dict] = None) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                return await client.request(
                    method,
                    url,
                    json=json,
                    headers={"X-API-KEY": self.api_key, "Content-Type": "application/json"},
                )
        except httpx.HTTPError as e:
            raise TransportError(f"Crossmint {method} failed: {e}") from e

    async def send_transfer(
        self, wallet_locator: str, token_locator: str, params: dict
    ) -> SubmitReceipt:
        """POST a transfer and report acceptance or refusal.

        4xx answers are refusals; 5xx answers and network failures raise.

        Raises:
            TransportError: Network failure, provider 5xx or unreadable body
        """
        url = self._wallet_url(wallet_locator, "tokens", token_locator, "transfers")
        response = await self._request("POST", url, json=params)

        if 400 <= response.status_code < 500:
            reason = _error_message(response)
            logger.warning(f"Transfer from {wallet_locator} refused: {reason}")
            return SubmitReceipt(status=SubmitStatus.REJECTED, reason=reason)

        if response.status_code >= 300:
            raise TransportError(
                f"Crossmint transfer returned HTTP {response.status_code}: {_error_message(response)}"
            )

        data = _json_object(response, "transfer")
        transaction_id = data.get("id") or data.get("transactionId")
        if not transaction_id:
            return SubmitReceipt(status=SubmitStatus.REJECTED, reason="response carried no transaction id")

        logger.info(f"Transfer {transaction_id} submitted from {wallet_locator}")
        return SubmitReceipt(status=SubmitStatus.PENDING, handle=transaction_id)

    async def submit_transfer(
        self, wallet_locator: str, token_locator: str, params: dict
    ) -> OperationHandle:
        """Submit a transfer and return its handle.

        Raises:
            SubmissionRejected: Provider refused the transfer
            TransportError: Network failure or provider 5xx
        """
        receipt = await self.send_transfer(wallet_locator, token_locator, params)
        if receipt.status == SubmitStatus.REJECTED:
            raise SubmissionRejected(receipt.reason or "rejected without reason")
        return OperationHandle(id=receipt.handle)

    async def get_transaction_status(self, wallet_locator: str, transaction_id: str) -> StatusReport:
        """Read a wallet transaction's status.

        A 404 means the transaction is not visible yet and reads as pending.

        Raises:
            TransportError: Network failure, unexpected HTTP status or unreadable body
        """
        url = self._wallet_url(wallet_locator, "transactions", transaction_id)
        response = await self._request("GET", url)

        if response.status_code == 404:
            return StatusReport(status=ReportedStatus.PENDING)

        if response.status_code != 200:
            raise TransportError(
                f"Crossmint transaction status returned HTTP {response.status_code}: "
                f"{_error_message(response)}"
            )

        data = _json_object(response, "transaction status")
        status = data.get("status")

        if status == "success":
            return StatusReport(status=ReportedStatus.SUCCESS, result=data)

        if status == "failed":
            error = data.get("error") or {}
            reason = error.get("message") if isinstance(error, dict) else str(error)
            return StatusReport(status=ReportedStatus.FAILED, reason=reason or "Transaction failed")

        return StatusReport(status=ReportedStatus.PENDING, result=data)


class CustodialTransferChannel(OperationTarget):
    """One wallet's transfers, exposed as an OperationTarget.

    Lets the shared submitter and poller drive custodial transfers exactly
    like ledger transactions.
    """

    def __init__(self, client: CrossmintClient, wallet_locator: str):
        self.client = client
        self.wallet_locator = wallet_locator

    async def submit(self, operation: TransferRequest) -> SubmitReceipt:
        return await self.client.send_transfer(
            self.wallet_locator, operation.token_locator, operation.to_params()
        )

    async def get_operation_status(self, handle: str) -> StatusReport:
        return await self.client.get_transaction_status(self.wallet_locator, handle)
