"""Resource lifecycle and asynchronous operation management.

This module checks, installs and maintains contract code, and confirms
submitted operations by polling them to a terminal outcome.
"""

from stellar_lifecycle.lifecycle.models import (
    OperationHandle,
    OperationOutcome,
    OutcomeState,
    PollingPolicy,
    ProvisionResult,
    ResourceStatus,
)
from stellar_lifecycle.lifecycle.orchestrator import LifecycleOrchestrator, ResourceHealth
from stellar_lifecycle.lifecycle.poller import OperationPoller
from stellar_lifecycle.lifecycle.provisioner import ResourceProvisioner
from stellar_lifecycle.lifecycle.submitter import OperationSubmitter

__all__ = [
    "LifecycleOrchestrator",
    "OperationHandle",
    "OperationOutcome",
    "OperationPoller",
    "OperationSubmitter",
    "OutcomeState",
    "PollingPolicy",
    "ProvisionResult",
    "ResourceHealth",
    "ResourceProvisioner",
    "ResourceStatus",
]
