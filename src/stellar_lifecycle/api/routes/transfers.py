"""Custodial transfer endpoints.

POST submits a transfer and, unless wait=false, polls it to a terminal
outcome. A time-out is answered with 202: the transfer may still settle.
"""

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, HTTPException, Request, Response
from pydantic import BaseModel, Field

from stellar_lifecycle.api.deps import get_custodial_client, get_orchestrator, to_http_error
from stellar_lifecycle.custodial.crossmint import CustodialTransferChannel, TransferRequest
from stellar_lifecycle.errors import LifecycleError
from stellar_lifecycle.lifecycle.models import OutcomeState

router = APIRouter()

# Longest a single request may hold its connection polling
MAX_WAIT_SECONDS = 300


class TransferBody(BaseModel):
    """Request to transfer tokens out of a custodial wallet."""

    token_locator: str = Field(..., description="Token locator, e.g. stellar:xlm")
    recipient: str = Field(..., description="Recipient address or locator")
    amount: Decimal = Field(..., gt=0, description="Amount in token units")
    wait: bool = Field(default=True, description="Poll until the transfer settles")
    max_attempts: Optional[int] = Field(None, le=600, description="Poll rounds (default from config)")
    interval_ms: Optional[int] = Field(
        None, le=60_000, description="Delay between rounds (default from config)"
    )


class TransferResponse(BaseModel):
    """Transfer state after submission or confirmation."""

    transaction_id: str
    state: str = Field(..., description="pending, succeeded, failed or timed_out")
    reason: Optional[str] = Field(None, description="Provider failure reason")
    message: str = ""


class TransactionStatusResponse(BaseModel):
    """One status read for a wallet transaction."""

    transaction_id: str
    status: str = Field(..., description="pending, success or failed")
    reason: Optional[str] = None


@router.post("/wallets/{locator}/transfers", response_model=TransferResponse)
async def create_transfer(
    locator: str, body: TransferBody, request: Request, response: Response
) -> TransferResponse:
    """Submit a transfer and optionally wait for it to settle."""
    orchestrator = get_orchestrator(request)
    channel = CustodialTransferChannel(get_custodial_client(request), locator)
    transfer = TransferRequest(
        token_locator=body.token_locator,
        recipient=body.recipient,
        amount=str(body.amount),
    )

    policy = None
    if body.max_attempts is not None or body.interval_ms is not None:
        policy = {
            "max_attempts": (
                body.max_attempts if body.max_attempts is not None else orchestrator.policy.max_attempts
            ),
            "interval_ms": (
                body.interval_ms if body.interval_ms is not None else orchestrator.policy.interval_ms
            ),
        }
        # Non-positive values are rejected by the orchestrator with 400
        if policy["max_attempts"] * policy["interval_ms"] > MAX_WAIT_SECONDS * 1000:
            raise HTTPException(
                status_code=422,
                detail=f"max_attempts * interval_ms must not exceed {MAX_WAIT_SECONDS}s",
            )

    try:
        if not body.wait:
            handle = await orchestrator.submitter.submit(channel, transfer)
            response.status_code = 202
            return TransferResponse(
                transaction_id=handle.id,
                state=OutcomeState.PENDING.value,
                message="Transfer submitted",
            )

        outcome = await orchestrator.submit_and_confirm(transfer, policy=policy, target=channel)
    except LifecycleError as e:
        raise to_http_error(e)

    if outcome.state == OutcomeState.TIMED_OUT:
        response.status_code = 202
        message = "Still pending, check again later"
    elif outcome.state == OutcomeState.FAILED:
        message = "Transfer failed"
    else:
        message = f"Sent {body.amount} {body.token_locator} to {body.recipient}"

    return TransferResponse(
        transaction_id=outcome.handle_id,
        state=outcome.state.value,
        reason=outcome.reason,
        message=message,
    )


@router.get(
    "/wallets/{locator}/transactions/{transaction_id}",
    response_model=TransactionStatusResponse,
)
async def get_transaction(locator: str, transaction_id: str, request: Request) -> TransactionStatusResponse:
    """Read a transaction's current status once."""
    client = get_custodial_client(request)
    try:
        report = await client.get_transaction_status(locator, transaction_id)
    except LifecycleError as e:
        raise to_http_error(e)

    return TransactionStatusResponse(
        transaction_id=transaction_id,
        status=report.status.value,
        reason=report.reason,
    )
