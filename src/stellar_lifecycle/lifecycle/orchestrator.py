"""Lifecycle orchestrator.

Composes the provisioner, submitter and poller into the workflows the
application uses:

- ensure_resource_live: contract code is installed and not expired
- submit_and_confirm: submit any operation and wait for a terminal outcome
- keep_resource_alive: ensure_resource_live, then extend TTL when low
- resource_health: operator diagnostics, optionally triggering an install
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

from stellar_lifecycle.errors import ConfigurationError, Phase, annotate_phase
from stellar_lifecycle.fingerprint import ResourceFingerprint
from stellar_lifecycle.ledger.base import LedgerGateway, OperationTarget
from stellar_lifecycle.lifecycle.models import (
    OperationOutcome,
    PollingPolicy,
    ProvisionResult,
    ResourceStatus,
)
from stellar_lifecycle.lifecycle.poller import OperationPoller
from stellar_lifecycle.lifecycle.provisioner import ResourceProvisioner
from stellar_lifecycle.lifecycle.submitter import OperationSubmitter
from stellar_lifecycle.signing.base import OperationSigner
from stellar_lifecycle.utils.locks import SingleFlight

logger = logging.getLogger(__name__)

PolicyLike = Union[PollingPolicy, dict, None]


@dataclass(frozen=True)
class ResourceHealth:
    """Operator view of the managed resource."""

    fingerprint: str
    resource_installed: bool
    expired: bool
    ttl_remaining: Optional[int]
    as_of_sequence: int
    admin_credential_configured: bool
    install_result: Optional[ProvisionResult] = None

    def to_dict(self) -> dict:
        return {
            "fingerprint": self.fingerprint,
            "resource_installed": self.resource_installed,
            "expired": self.expired,
            "ttl_remaining": self.ttl_remaining,
            "as_of_sequence": self.as_of_sequence,
            "admin_credential_configured": self.admin_credential_configured,
            "install_result": self.install_result.to_dict() if self.install_result else None,
        }


@dataclass(frozen=True)
class MaintenanceReport:
    """Result of keep_resource_alive."""

    provision: ProvisionResult
    ttl_extension: Optional[ProvisionResult] = None

    @property
    def status(self) -> ResourceStatus:
        if self.ttl_extension is not None:
            return self.ttl_extension.status
        return self.provision.status


class LifecycleOrchestrator:
    """Entry point for resource and operation workflows.

    The gateway may be shared with other orchestrators; no lock is held on it.
    Install-side work for one fingerprint goes through a single-flight gate:
    concurrent callers of the same operation share one run, and different
    operations on the fingerprint never overlap.
    """

    def __init__(
        self,
        gateway: LedgerGateway,
        signer: Optional[OperationSigner] = None,
        policy: PolicyLike = None,
        provisioner: Optional[ResourceProvisioner] = None,
        submitter: Optional[OperationSubmitter] = None,
        poller: Optional[OperationPoller] = None,
        ttl_bump_threshold: int = 17280,
        max_ttl_extension: int = 500000,
        lock_timeout: Optional[float] = None,
    ):
        self.gateway = gateway
        self.signer = signer
        self.policy = self._resolve_policy(policy) if policy is not None else PollingPolicy()
        self.provisioner = provisioner or ResourceProvisioner()
        self.submitter = submitter or OperationSubmitter()
        self.poller = poller or OperationPoller()
        self.ttl_bump_threshold = ttl_bump_threshold
        self.max_ttl_extension = max_ttl_extension
        self.gate = SingleFlight(timeout=lock_timeout)

    @classmethod
    def from_settings(
        cls,
        settings,
        gateway: Optional[LedgerGateway] = None,
        signer: Optional[OperationSigner] = None,
    ) -> "LifecycleOrchestrator":
        """Build an orchestrator from Settings.

        Gateway and signer default to the ones the settings select.
        """
        if gateway is None:
            if settings.dry_run:
                from stellar_lifecycle.ledger.simulated import SimulatedLedgerGateway
                gateway = SimulatedLedgerGateway()
            else:
                from stellar_lifecycle.ledger.soroban import SorobanRpcGateway
                gateway = SorobanRpcGateway(
                    rpc_url=settings.soroban_rpc_url,
                    testnet=settings.is_testnet,
                    timeout=settings.rpc_timeout,
                )

        if signer is None:
            from stellar_lifecycle.signing.factory import get_admin_signer
            signer = get_admin_signer(settings)

        return cls(
            gateway=gateway,
            signer=signer,
            policy=settings.polling_policy(),
            provisioner=ResourceProvisioner(
                recheck_after_failure=settings.recheck_after_failed_install
            ),
            ttl_bump_threshold=settings.ttl_bump_threshold,
            max_ttl_extension=settings.max_ttl_extension,
            lock_timeout=settings.resource_lock_timeout,
        )

    @staticmethod
    def _resolve_policy(policy: PolicyLike) -> PollingPolicy:
        """Accept a PollingPolicy or a dict of its fields.

        Raises:
            ConfigurationError: Unknown keys or non-positive values
        """
        if isinstance(policy, PollingPolicy):
            return policy
        if isinstance(policy, dict):
            unknown = set(policy) - {"max_attempts", "interval_ms"}
            if unknown:
                raise ConfigurationError(f"Unknown polling options: {sorted(unknown)}")
            return PollingPolicy(**policy)
        raise ConfigurationError(f"Invalid polling policy: {policy!r}")

    @property
    def admin_configured(self) -> bool:
        return self.signer is not None

    async def ensure_resource_live(
        self,
        fingerprint: ResourceFingerprint,
        resource_bytes: bytes,
        signer: Optional[OperationSigner] = None,
        policy: PolicyLike = None,
    ) -> ProvisionResult:
        """Make sure the resource is installed and not expired.

        A caller arriving while an install for the fingerprint is running
        gets that run's result, whatever signer or policy it passed.

        Raises:
            ConfigurationError: No signer configured (no network call made)
            TransportError, SubmissionRejected: see ResourceProvisioner
            LockTimeoutError: Fingerprint busy with a TTL extension past lock_timeout
        """
        signer = signer or self.signer
        if signer is None:
            raise ConfigurationError("Admin signer is not configured", phase=Phase.INSTALL)
        policy = self._resolve_policy(policy) if policy is not None else self.policy

        async def install() -> ProvisionResult:
            return await self.provisioner.ensure_installed(
                self.gateway,
                self.submitter,
                self.poller,
                fingerprint,
                resource_bytes,
                signer,
                policy,
            )

        return await self.gate.run(fingerprint.hex, "ensure_installed", install)

    async def submit_and_confirm(
        self,
        operation: Any,
        policy: PolicyLike = None,
        target: Optional[OperationTarget] = None,
    ) -> OperationOutcome:
        """Submit an operation and poll it to a terminal outcome.

        Args:
            operation: Signed ledger operation, or a transfer request when
                target is a custodial channel
            policy: Polling bound (defaults to the orchestrator's policy)
            target: Where to submit (defaults to the ledger gateway)

        Returns:
            Succeeded, Failed or TimedOut outcome

        Raises:
            ConfigurationError: Invalid policy
            SubmissionRejected: Target refused the operation (phase=submit)
            TransportError: Submission request failed (phase=submit)
        """
        policy = self._resolve_policy(policy) if policy is not None else self.policy
        target = target or self.gateway

        async with annotate_phase(Phase.SUBMIT):
            handle = await self.submitter.submit(target, operation)

        async with annotate_phase(Phase.POLL):
            return await self.poller.poll_until_terminal(target, handle, policy)

    async def extend_ttl_if_low(
        self, fingerprint: ResourceFingerprint, threshold: Optional[int] = None
    ) -> ProvisionResult:
        """Extend TTL to max_ttl_extension when below the threshold.

        threshold defaults to ttl_bump_threshold.
        """
        threshold = self.ttl_bump_threshold if threshold is None else threshold

        async def extend() -> ProvisionResult:
            return await self.provisioner.extend_ttl_if_low(
                self.gateway,
                self.submitter,
                self.poller,
                fingerprint,
                self.signer,
                self.policy,
                threshold=threshold,
                extend_to=self.max_ttl_extension,
            )

        return await self.gate.run(fingerprint.hex, f"extend_ttl:{threshold}", extend)

    async def keep_resource_alive(
        self, fingerprint: ResourceFingerprint, resource_bytes: bytes
    ) -> MaintenanceReport:
        """Ensure the resource is live, then top up its TTL if it runs low.

        A freshly installed or restored resource starts with the network
        minimum TTL, so it is always extended.
        """
        provision = await self.ensure_resource_live(fingerprint, resource_bytes)
        if not provision.status.is_live:
            return MaintenanceReport(provision=provision)

        threshold = self.max_ttl_extension if provision.install_attempted else None
        extension = await self.extend_ttl_if_low(fingerprint, threshold=threshold)
        return MaintenanceReport(provision=provision, ttl_extension=extension)

    async def resource_health(
        self,
        fingerprint: ResourceFingerprint,
        install: bool = False,
        resource_bytes: Optional[bytes] = None,
    ) -> ResourceHealth:
        """Report resource status; with install=True also run ensure_resource_live.

        Raises:
            ConfigurationError: install requested without signer or bytes
        """
        install_result = None
        if install:
            install_result = await self.ensure_resource_live(fingerprint, resource_bytes or b"")
            status = install_result.status
        else:
            status = await self.provisioner.check_status(self.gateway, fingerprint)

        return ResourceHealth(
            fingerprint=fingerprint.hex,
            resource_installed=status.installed,
            expired=status.expired,
            ttl_remaining=status.ttl_remaining,
            as_of_sequence=status.as_of_sequence,
            admin_credential_configured=self.admin_configured,
            install_result=install_result,
        )
