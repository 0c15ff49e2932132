"""Operation submission."""

import logging
from typing import Any

from stellar_lifecycle.errors import SubmissionRejected
from stellar_lifecycle.ledger.base import OperationTarget, SubmitStatus
from stellar_lifecycle.lifecycle.models import OperationHandle

logger = logging.getLogger(__name__)


class OperationSubmitter:
    """Submits one operation and returns its handle.

    Exactly one request is made. TransportError from the target propagates
    untouched so callers can decide whether to resubmit; a rejection never
    produces a handle.
    """

    async def submit(self, target: OperationTarget, operation: Any) -> OperationHandle:
        """Submit an operation.

        Raises:
            SubmissionRejected: Target refused the operation
            TransportError: Network failure, outcome unknown
        """
        receipt = await target.submit(operation)

        if receipt.status == SubmitStatus.REJECTED:
            logger.warning(f"Submission rejected by {type(target).__name__}: {receipt.reason}")
            raise SubmissionRejected(receipt.reason or "rejected without reason")

        if not receipt.handle:
            raise SubmissionRejected("accepted without a handle")

        handle = OperationHandle(id=receipt.handle)
        logger.info(f"Submitted operation {handle.id}")
        return handle
