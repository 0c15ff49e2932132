"""In-process simulated ledger for dry-run mode and tests."""

import logging
import secrets
from collections import defaultdict
from typing import Any, Optional, Union

from stellar_lifecycle.fingerprint import ResourceFingerprint
from stellar_lifecycle.ledger.base import (
    AccountState,
    LedgerEntryInfo,
    LedgerGateway,
    ReportedStatus,
    StatusReport,
    SubmitReceipt,
    SubmitStatus,
)
from stellar_lifecycle.signing.base import OperationKind, SignedOperation

logger = logging.getLogger(__name__)

# ~7 days at 5s/ledger
DEFAULT_INSTALL_TTL = 120_960


def _parse_status(value: Union[str, StatusReport]) -> StatusReport:
    """Accept 'pending', 'success' or 'failed:<reason>' shorthands."""
    if isinstance(value, StatusReport):
        return value
    if value.startswith("failed"):
        _, _, reason = value.partition(":")
        return StatusReport(status=ReportedStatus.FAILED, reason=reason or "simulated failure")
    if value == "success":
        return StatusReport(status=ReportedStatus.SUCCESS, result={"simulated": True})
    return StatusReport(status=ReportedStatus.PENDING)


class SimulatedLedgerGateway(LedgerGateway):
    """Simulated ledger with scriptable operation statuses.

    Successful install/restore/extend operations take effect on the code
    entries when their success status is first read. Counters record every
    call so tests can assert on round-trips.
    """

    def __init__(
        self,
        sequence: int = 1_000_000,
        install_ttl: int = DEFAULT_INSTALL_TTL,
        confirm_after: int = 1,
    ):
        self.sequence = sequence
        self.install_ttl = install_ttl
        self.confirm_after = max(1, confirm_after)

        self.entries: dict[bytes, int] = {}
        self.account_sequences: dict[str, int] = {}
        self.submissions: list[Any] = []
        self.entry_reads = 0
        self.status_reads: dict[str, int] = defaultdict(int)

        # Faults injected into the next calls
        self.entry_errors: list[Exception] = []
        self.reject_next: Optional[str] = None

        self._next_script: Optional[list[StatusReport]] = None
        self._scripts: dict[str, list[StatusReport]] = {}
        self._operations: dict[str, Any] = {}
        self._final: dict[str, StatusReport] = {}

    # ------------------------------------------------------------------
    # Test/dry-run controls
    # ------------------------------------------------------------------

    def install(self, fingerprint: ResourceFingerprint, ttl: Optional[int] = None) -> None:
        """Place a code entry directly on the ledger."""
        self.entries[fingerprint.digest] = self.sequence + (self.install_ttl if ttl is None else ttl)

    def advance(self, ledgers: int) -> None:
        self.sequence += ledgers

    def script_next(self, *statuses: Union[str, StatusReport]) -> None:
        """Set the status sequence for the next submitted operation.

        The last status repeats once the script runs out.
        """
        self._next_script = [_parse_status(s) for s in statuses]

    def script(self, handle: str, *statuses: Union[str, StatusReport]) -> None:
        """Set the status sequence for a known handle."""
        self._scripts[handle] = [_parse_status(s) for s in statuses]

    # ------------------------------------------------------------------
    # LedgerGateway
    # ------------------------------------------------------------------

    async def get_entry(self, fingerprint: ResourceFingerprint) -> LedgerEntryInfo:
        self.entry_reads += 1
        if self.entry_errors:
            raise self.entry_errors.pop(0)

        expiry = self.entries.get(fingerprint.digest)
        if expiry is None:
            return LedgerEntryInfo(present=False, latest_sequence=self.sequence)
        return LedgerEntryInfo(present=True, expiry_sequence=expiry, latest_sequence=self.sequence)

    async def get_current_sequence(self) -> int:
        return self.sequence

    async def get_account(self, address: str) -> AccountState:
        sequence = self.account_sequences.setdefault(address, 100)
        return AccountState(address=address, sequence=sequence)

    async def submit(self, operation: Any) -> SubmitReceipt:
        self.submissions.append(operation)

        if self.reject_next is not None:
            reason, self.reject_next = self.reject_next, None
            logger.info(f"[SIMULATED] Rejecting submission: {reason}")
            return SubmitReceipt(status=SubmitStatus.REJECTED, reason=reason)

        handle = f"sim_tx_{secrets.token_hex(16)}"
        if self._next_script is not None:
            self._scripts[handle], self._next_script = self._next_script, None
        else:
            pending = [StatusReport(status=ReportedStatus.PENDING)] * (self.confirm_after - 1)
            self._scripts[handle] = pending + [_parse_status("success")]

        self._operations[handle] = operation
        logger.info(f"[SIMULATED] Accepted operation {handle}")
        return SubmitReceipt(status=SubmitStatus.PENDING, handle=handle)

    async def get_operation_status(self, handle: str) -> StatusReport:
        self.status_reads[handle] += 1

        if handle in self._final:
            return self._final[handle]

        script = self._scripts.get(handle)
        if not script:
            # Unknown to the node yet
            return StatusReport(status=ReportedStatus.PENDING)

        report = script.pop(0) if len(script) > 1 else script[0]
        if report.status != ReportedStatus.PENDING:
            self._final[handle] = report
            if report.status == ReportedStatus.SUCCESS:
                self._apply(self._operations.get(handle))
        return report

    def _apply(self, operation: Any) -> None:
        """Apply a confirmed operation's effect on ledger state."""
        if not isinstance(operation, SignedOperation) or operation.fingerprint is None:
            return

        digest = operation.fingerprint.digest
        if operation.kind in (OperationKind.INSTALL, OperationKind.RESTORE):
            self.entries[digest] = self.sequence + self.install_ttl
        elif operation.kind == OperationKind.EXTEND_TTL and operation.extend_to:
            self.entries[digest] = max(self.entries.get(digest, 0), self.sequence + operation.extend_to)

        for address in self.account_sequences:
            self.account_sequences[address] += 1
