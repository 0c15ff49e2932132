"""Ledger gateways.

SorobanRpcGateway talks to a real node; SimulatedLedgerGateway
(stellar_lifecycle.ledger.simulated) backs dry-run mode and tests.
"""

from stellar_lifecycle.ledger.base import (
    AccountState,
    LedgerEntryInfo,
    LedgerGateway,
    OperationTarget,
    ReportedStatus,
    StatusReport,
    SubmitReceipt,
    SubmitStatus,
)

__all__ = [
    "AccountState",
    "LedgerEntryInfo",
    "LedgerGateway",
    "OperationTarget",
    "ReportedStatus",
    "StatusReport",
    "SubmitReceipt",
    "SubmitStatus",
]
