"""Tests for LifecycleOrchestrator workflows."""

import asyncio

import httpx
import pytest

from stellar_lifecycle.config import Settings
from stellar_lifecycle.custodial.crossmint import (
    CrossmintClient,
    CustodialTransferChannel,
    TransferRequest,
)
from stellar_lifecycle.errors import ConfigurationError, LockTimeoutError, Phase, SubmissionRejected
from stellar_lifecycle.ledger.simulated import SimulatedLedgerGateway
from stellar_lifecycle.lifecycle.models import OutcomeState, PollingPolicy
from stellar_lifecycle.lifecycle.orchestrator import LifecycleOrchestrator
from stellar_lifecycle.signing.base import OperationKind
from stellar_lifecycle.signing.simulated import SimulatedSigner


@pytest.fixture
def orchestrator(gateway, signer, poller, policy):
    return LifecycleOrchestrator(gateway, signer=signer, policy=policy, poller=poller)


def crossmint_transport(statuses, transfer_status=201, transfer_body=None):
    """Mock Crossmint: one transfer endpoint, scripted transaction statuses."""
    calls = {"transfers": 0, "status": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            calls["transfers"] += 1
            return httpx.Response(transfer_status, json=transfer_body or {"id": "xm-tx-1"})
        calls["status"] += 1
        index = min(calls["status"], len(statuses)) - 1
        return httpx.Response(200, json=statuses[index])

    return httpx.MockTransport(handler), calls


class TestEnsureResourceLive:
    """Tests for ensure_resource_live."""

    @pytest.mark.asyncio
    async def test_installs_absent_resource(self, orchestrator, gateway, fingerprint, resource_bytes):
        result = await orchestrator.ensure_resource_live(fingerprint, resource_bytes)

        assert result.status.is_live
        assert result.install_attempted
        assert len(gateway.submissions) == 1

    @pytest.mark.asyncio
    async def test_no_signer_raises_before_network(self, gateway, fingerprint, resource_bytes):
        orchestrator = LifecycleOrchestrator(gateway)

        with pytest.raises(ConfigurationError):
            await orchestrator.ensure_resource_live(fingerprint, resource_bytes)

        assert gateway.entry_reads == 0
        assert not orchestrator.admin_configured

    @pytest.mark.asyncio
    async def test_concurrent_callers_install_once(self, orchestrator, gateway, fingerprint, resource_bytes):
        results = await asyncio.gather(
            *(orchestrator.ensure_resource_live(fingerprint, resource_bytes) for _ in range(5))
        )

        assert len(gateway.submissions) == 1
        assert all(r is results[0] for r in results)
        assert results[0].install_attempted
        assert results[0].status.is_live

    @pytest.mark.asyncio
    async def test_busy_resource_times_out(self, gateway, signer, poller, policy, fingerprint, resource_bytes):
        orchestrator = LifecycleOrchestrator(
            gateway, signer=signer, policy=policy, poller=poller, lock_timeout=0.05
        )
        started = asyncio.Event()
        release = asyncio.Event()

        async def hold():
            started.set()
            await release.wait()

        holder = asyncio.create_task(orchestrator.gate.run(fingerprint.hex, "extend_ttl:1", hold))
        await started.wait()

        with pytest.raises(LockTimeoutError):
            await orchestrator.ensure_resource_live(fingerprint, resource_bytes)

        release.set()
        await holder
        assert gateway.submissions == []

    @pytest.mark.asyncio
    async def test_signer_override(self, gateway, fingerprint, resource_bytes, poller, policy):
        orchestrator = LifecycleOrchestrator(gateway, policy=policy, poller=poller)

        result = await orchestrator.ensure_resource_live(
            fingerprint, resource_bytes, signer=SimulatedSigner("other")
        )
        assert result.install_attempted


class TestSubmitAndConfirm:
    """Tests for submit_and_confirm."""

    @pytest.mark.asyncio
    async def test_ledger_operation(self, orchestrator, gateway):
        gateway.script_next("pending", "success")

        outcome = await orchestrator.submit_and_confirm("AAAA-envelope")

        assert outcome.state == OutcomeState.SUCCEEDED
        assert outcome.attempts == 2

    @pytest.mark.asyncio
    async def test_dict_policy(self, orchestrator, gateway):
        gateway.script_next("pending")

        outcome = await orchestrator.submit_and_confirm(
            "AAAA-envelope", policy={"max_attempts": 5, "interval_ms": 1}
        )

        assert outcome.state == OutcomeState.TIMED_OUT
        assert outcome.attempts == 5

    @pytest.mark.asyncio
    async def test_unknown_policy_key(self, orchestrator, gateway):
        with pytest.raises(ConfigurationError):
            await orchestrator.submit_and_confirm("AAAA", policy={"retries": 3})
        assert gateway.submissions == []

    @pytest.mark.asyncio
    async def test_rejection_tagged_submit(self, orchestrator, gateway):
        gateway.reject_next = "txBAD_SEQ"

        with pytest.raises(SubmissionRejected) as exc:
            await orchestrator.submit_and_confirm("AAAA-envelope")

        assert exc.value.phase == Phase.SUBMIT
        assert exc.value.reason == "txBAD_SEQ"

    @pytest.mark.asyncio
    async def test_custodial_transfer_confirmed(self, orchestrator):
        transport, calls = crossmint_transport([
            {"id": "xm-tx-1", "status": "pending"},
            {"id": "xm-tx-1", "status": "pending"},
            {"id": "xm-tx-1", "status": "success", "onChain": {"txId": "abc"}},
        ])
        client = CrossmintClient(api_key="sk_test", transport=transport)
        channel = CustodialTransferChannel(client, "email:user@example.com:stellar")

        outcome = await orchestrator.submit_and_confirm(
            TransferRequest(token_locator="stellar:xlm", recipient="GDEST", amount="10"),
            policy=PollingPolicy(max_attempts=5, interval_ms=1),
            target=channel,
        )

        assert outcome.state == OutcomeState.SUCCEEDED
        assert outcome.handle_id == "xm-tx-1"
        assert outcome.attempts == 3
        assert calls == {"transfers": 1, "status": 3}

    @pytest.mark.asyncio
    async def test_custodial_transfer_failed(self, orchestrator):
        transport, _ = crossmint_transport([
            {"id": "xm-tx-1", "status": "failed", "error": {"message": "insufficient funds"}},
        ])
        channel = CustodialTransferChannel(CrossmintClient("sk_test", transport=transport), "w1")

        outcome = await orchestrator.submit_and_confirm(
            TransferRequest(token_locator="stellar:xlm", recipient="GDEST", amount="100"),
            target=channel,
        )

        assert outcome.state == OutcomeState.FAILED
        assert outcome.reason == "insufficient funds"

    @pytest.mark.asyncio
    async def test_custodial_refusal(self, orchestrator):
        transport, calls = crossmint_transport(
            [], transfer_status=400, transfer_body={"message": "Invalid recipient"}
        )
        channel = CustodialTransferChannel(CrossmintClient("sk_test", transport=transport), "w1")

        with pytest.raises(SubmissionRejected) as exc:
            await orchestrator.submit_and_confirm(
                TransferRequest(token_locator="stellar:xlm", recipient="bad", amount="1"),
                target=channel,
            )

        assert exc.value.reason == "Invalid recipient"
        assert calls["status"] == 0


class TestMaintenance:
    """Tests for keep_resource_alive and resource_health."""

    @pytest.mark.asyncio
    async def test_fresh_install_is_extended(self, orchestrator, gateway, fingerprint, resource_bytes):
        report = await orchestrator.keep_resource_alive(fingerprint, resource_bytes)

        kinds = [op.kind for op in gateway.submissions]
        assert kinds == [OperationKind.INSTALL, OperationKind.EXTEND_TTL]
        assert report.status.ttl_remaining == orchestrator.max_ttl_extension

    @pytest.mark.asyncio
    async def test_healthy_resource_untouched(
        self, orchestrator, gateway, fingerprint, resource_bytes
    ):
        gateway.install(fingerprint, ttl=100000)

        report = await orchestrator.keep_resource_alive(fingerprint, resource_bytes)

        assert gateway.submissions == []
        assert not report.provision.install_attempted
        assert not report.ttl_extension.install_attempted

    @pytest.mark.asyncio
    async def test_low_ttl_extended(self, orchestrator, gateway, fingerprint, resource_bytes):
        gateway.install(fingerprint, ttl=1000)

        await orchestrator.keep_resource_alive(fingerprint, resource_bytes)

        assert [op.kind for op in gateway.submissions] == [OperationKind.EXTEND_TTL]

    @pytest.mark.asyncio
    async def test_failed_install_skips_extension(
        self, orchestrator, gateway, fingerprint, resource_bytes
    ):
        gateway.script_next("failed:txFAILED")

        report = await orchestrator.keep_resource_alive(fingerprint, resource_bytes)

        assert report.ttl_extension is None
        assert len(gateway.submissions) == 1

    @pytest.mark.asyncio
    async def test_resource_health_read_only(self, orchestrator, gateway, fingerprint):
        health = await orchestrator.resource_health(fingerprint)

        assert health.resource_installed is False
        assert health.admin_credential_configured is True
        assert health.install_result is None
        assert gateway.submissions == []

    @pytest.mark.asyncio
    async def test_resource_health_with_install(
        self, orchestrator, gateway, fingerprint, resource_bytes
    ):
        health = await orchestrator.resource_health(
            fingerprint, install=True, resource_bytes=resource_bytes
        )

        assert health.resource_installed is True
        assert health.install_result.install_attempted is True
        assert health.to_dict()["install_result"]["install_outcome"]["state"] == "succeeded"


class TestFromSettings:
    """Tests for building an orchestrator from settings."""

    def test_dry_run(self):
        settings = Settings(dry_run=True, poll_max_attempts=4, poll_interval_ms=250)

        orchestrator = LifecycleOrchestrator.from_settings(settings)

        assert isinstance(orchestrator.gateway, SimulatedLedgerGateway)
        assert isinstance(orchestrator.signer, SimulatedSigner)
        assert orchestrator.policy == PollingPolicy(max_attempts=4, interval_ms=250)

    def test_no_secret_means_no_signer(self):
        settings = Settings(dry_run=False, wasm_admin_secret=None)

        orchestrator = LifecycleOrchestrator.from_settings(settings)

        assert orchestrator.signer is None
        assert orchestrator.gateway.rpc_url == settings.soroban_rpc_url

    def test_invalid_polling_config(self):
        settings = Settings(dry_run=True, poll_max_attempts=0)

        with pytest.raises(ConfigurationError):
            LifecycleOrchestrator.from_settings(settings)
