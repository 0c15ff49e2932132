"""Pytest configuration and fixtures."""

import os

import pytest
import pytest_asyncio

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "true"
os.environ["DRY_RUN"] = "true"
os.environ["INIT_RESOURCE_ON_STARTUP"] = "false"
os.environ["ADMIN_TOKEN"] = ""
os.environ["WASM_ADMIN_SECRET"] = ""

from stellar_lifecycle.fingerprint import ResourceFingerprint
from stellar_lifecycle.ledger.simulated import SimulatedLedgerGateway
from stellar_lifecycle.lifecycle.models import PollingPolicy
from stellar_lifecycle.lifecycle.poller import OperationPoller
from stellar_lifecycle.signing.simulated import SimulatedSigner

RESOURCE_BYTES = b"\x00asm\x01\x00\x00\x00simple-account-test"


class FakeSleep:
    """Records requested delays instead of waiting."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.calls)


@pytest.fixture
def resource_bytes() -> bytes:
    return RESOURCE_BYTES


@pytest.fixture
def fingerprint() -> ResourceFingerprint:
    return ResourceFingerprint.compute(RESOURCE_BYTES)


@pytest.fixture
def gateway() -> SimulatedLedgerGateway:
    """Simulated ledger at sequence 1,000,000."""
    return SimulatedLedgerGateway()


@pytest.fixture
def signer() -> SimulatedSigner:
    return SimulatedSigner()


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture
def poller(fake_sleep) -> OperationPoller:
    """Poller that never actually waits."""
    return OperationPoller(sleep=fake_sleep)


@pytest.fixture
def policy() -> PollingPolicy:
    return PollingPolicy(max_attempts=3, interval_ms=10)


@pytest_asyncio.fixture
async def installed_gateway(gateway, fingerprint) -> SimulatedLedgerGateway:
    """Simulated ledger with the test resource already live."""
    gateway.install(fingerprint)
    return gateway
