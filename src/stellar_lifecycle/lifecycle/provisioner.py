"""Contract code provisioning.

Install flow:
1. Read the code entry and the current ledger sequence
2. If live (installed and not expired), stop - nothing is submitted
3. Otherwise sign one install (absent) or restore (expired) operation,
   submit it and poll it to a terminal outcome
4. After success, read the status again and return that
5. After failure or time-out, return the status from step 1

Steps 1, 3 and 4 are strictly ordered. There is no retry loop: a caller
that wants another attempt calls ensure_installed again, which re-reads
status first.
"""

import logging
from typing import Optional

from stellar_lifecycle.errors import ConfigurationError, Phase, annotate_phase
from stellar_lifecycle.fingerprint import ResourceFingerprint
from stellar_lifecycle.ledger.base import LedgerGateway
from stellar_lifecycle.lifecycle.models import (
    OutcomeState,
    PollingPolicy,
    ProvisionResult,
    ResourceStatus,
)
from stellar_lifecycle.lifecycle.poller import OperationPoller
from stellar_lifecycle.lifecycle.submitter import OperationSubmitter
from stellar_lifecycle.signing.base import OperationSigner, SignedOperation

logger = logging.getLogger(__name__)


class ResourceProvisioner:
    """Decides whether contract code must be (re)installed and does it."""

    def __init__(self, recheck_after_failure: bool = False):
        """Initialize provisioner.

        Args:
            recheck_after_failure: Re-read status after a Failed or TimedOut
                install instead of returning the pre-install status
        """
        self.recheck_after_failure = recheck_after_failure

    async def _read_status(
        self, gateway: LedgerGateway, fingerprint: ResourceFingerprint
    ) -> ResourceStatus:
        entry = await gateway.get_entry(fingerprint)
        current = entry.latest_sequence
        if current is None:
            current = await gateway.get_current_sequence()

        if not entry.present:
            return ResourceStatus.absent(current)
        return ResourceStatus.from_expiry(entry.expiry_sequence or 0, current)

    async def check_status(
        self, gateway: LedgerGateway, fingerprint: ResourceFingerprint
    ) -> ResourceStatus:
        """Read install/expiry status. Never writes to the ledger.

        Raises:
            TransportError: Read failed (phase=check)
        """
        async with annotate_phase(Phase.CHECK):
            status = await self._read_status(gateway, fingerprint)

        logger.debug(
            f"Resource {fingerprint.short}: installed={status.installed} "
            f"expired={status.expired} ttl={status.ttl_remaining}"
        )
        return status

    async def _submit_and_poll(
        self,
        gateway: LedgerGateway,
        submitter: OperationSubmitter,
        poller: OperationPoller,
        operation: SignedOperation,
        policy: PollingPolicy,
    ):
        handle = await submitter.submit(gateway, operation)
        return await poller.poll_until_terminal(gateway, handle, policy)

    async def ensure_installed(
        self,
        gateway: LedgerGateway,
        submitter: OperationSubmitter,
        poller: OperationPoller,
        fingerprint: ResourceFingerprint,
        resource_bytes: bytes,
        signer: Optional[OperationSigner],
        policy: PollingPolicy,
    ) -> ProvisionResult:
        """Install or restore the resource if it is absent or expired.

        At most one install operation is submitted per call.

        Raises:
            ConfigurationError: No signer, or bytes do not match fingerprint
                (raised before any network call)
            TransportError: A gateway call failed (phase says which)
            SubmissionRejected: Gateway refused the install (phase=install)
        """
        if signer is None:
            raise ConfigurationError("Admin signer is not configured", phase=Phase.INSTALL)
        if not resource_bytes:
            raise ConfigurationError("Resource bytes are required", phase=Phase.INSTALL)
        if ResourceFingerprint.compute(resource_bytes) != fingerprint:
            raise ConfigurationError(
                f"Resource bytes do not match fingerprint {fingerprint.short}", phase=Phase.INSTALL
            )

        status = await self.check_status(gateway, fingerprint)

        if status.is_live:
            logger.info(
                f"Resource {fingerprint.short} OK (TTL: {status.ttl_remaining} ledgers, "
                f"~{round(status.ttl_remaining * 5 / 3600)} hours)"
            )
            return ProvisionResult(status=status, install_attempted=False)

        async with annotate_phase(Phase.INSTALL):
            account = await gateway.get_account(signer.public_key)
            if status.expired:
                logger.info(f"Resource {fingerprint.short} expired, restoring...")
                operation = await signer.build_restore(account, fingerprint)
            else:
                logger.info(f"Resource {fingerprint.short} not installed, installing...")
                operation = await signer.build_install(account, resource_bytes)
            outcome = await self._submit_and_poll(gateway, submitter, poller, operation, policy)

        if outcome.state == OutcomeState.SUCCEEDED:
            logger.info(f"Resource {fingerprint.short} {operation.kind.value} confirmed")
            async with annotate_phase(Phase.CONFIRM):
                final = await self._read_status(gateway, fingerprint)
            return ProvisionResult(status=final, install_attempted=True, install_outcome=outcome)

        if outcome.state == OutcomeState.FAILED:
            logger.error(f"Resource {fingerprint.short} {operation.kind.value} failed: {outcome.reason}")
        else:
            logger.warning(
                f"Resource {fingerprint.short} {operation.kind.value} still pending, check again later"
            )

        if self.recheck_after_failure:
            async with annotate_phase(Phase.CONFIRM):
                status = await self._read_status(gateway, fingerprint)

        return ProvisionResult(status=status, install_attempted=True, install_outcome=outcome)

    async def extend_ttl_if_low(
        self,
        gateway: LedgerGateway,
        submitter: OperationSubmitter,
        poller: OperationPoller,
        fingerprint: ResourceFingerprint,
        signer: Optional[OperationSigner],
        policy: PollingPolicy,
        threshold: int,
        extend_to: int,
    ) -> ProvisionResult:
        """Extend the resource's TTL when fewer than threshold ledgers remain.

        Only a live resource is extended; absent or expired resources need
        ensure_installed first and are returned untouched.

        Raises:
            ConfigurationError: No signer configured
        """
        if signer is None:
            raise ConfigurationError("Admin signer is not configured", phase=Phase.INSTALL)

        status = await self.check_status(gateway, fingerprint)
        if not status.is_live or status.ttl_remaining >= threshold:
            return ProvisionResult(status=status, install_attempted=False)

        logger.info(
            f"Resource {fingerprint.short} TTL low ({status.ttl_remaining} ledgers), extending to {extend_to}..."
        )
        async with annotate_phase(Phase.INSTALL):
            account = await gateway.get_account(signer.public_key)
            operation = await signer.build_extend_ttl(account, fingerprint, extend_to)
            outcome = await self._submit_and_poll(gateway, submitter, poller, operation, policy)

        if outcome.state == OutcomeState.SUCCEEDED:
            async with annotate_phase(Phase.CONFIRM):
                status = await self._read_status(gateway, fingerprint)

        return ProvisionResult(status=status, install_attempted=True, install_outcome=outcome)
