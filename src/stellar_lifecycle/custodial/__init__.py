"""Custodial wallet provider integration."""

from stellar_lifecycle.custodial.crossmint import (
    CrossmintClient,
    CustodialTransferChannel,
    TransferRequest,
)

__all__ = ["CrossmintClient", "CustodialTransferChannel", "TransferRequest"]
