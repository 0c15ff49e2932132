"""Polling of submitted operations to a terminal outcome.

State machine per handle:

    PENDING --success marker--> SUCCEEDED
    PENDING --failure marker--> FAILED
    PENDING --budget spent----> TIMED_OUT

One poller serves ledger transactions and custodial transfers alike; the
only thing it needs is a status-query capability.
"""

import asyncio
import logging
from collections import OrderedDict
from typing import Awaitable, Callable, Union

from stellar_lifecycle.errors import TransportError
from stellar_lifecycle.ledger.base import OperationTarget, ReportedStatus, StatusReport
from stellar_lifecycle.lifecycle.models import OperationHandle, OperationOutcome, PollingPolicy

logger = logging.getLogger(__name__)

StatusQuery = Callable[[str], Awaitable[StatusReport]]

# Remembered Succeeded/Failed outcomes
TERMINAL_CACHE_SIZE = 1024


class OperationPoller:
    """Polls a handle until it is terminal or the policy budget is spent.

    Waiting is an asyncio sleep, so no connection or lock is held between
    attempts. Succeeded and Failed outcomes are remembered per handle: once
    seen, the same outcome is returned to every later caller without another
    read. TimedOut is not remembered since the operation may still settle.
    """

    def __init__(self, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self._sleep = sleep
        self._terminal: OrderedDict[str, OperationOutcome] = OrderedDict()

    def _remember(self, outcome: OperationOutcome) -> OperationOutcome:
        self._terminal[outcome.handle_id] = outcome
        self._terminal.move_to_end(outcome.handle_id)
        while len(self._terminal) > TERMINAL_CACHE_SIZE:
            self._terminal.popitem(last=False)
        return outcome

    def known_outcome(self, handle_id: str):
        """Terminal outcome already observed for a handle, if any."""
        return self._terminal.get(handle_id)

    async def poll_until_terminal(
        self,
        target: Union[OperationTarget, StatusQuery],
        handle: OperationHandle,
        policy: PollingPolicy,
    ) -> OperationOutcome:
        """Poll a handle to a terminal outcome.

        Never returns PENDING. A status read that fails with TransportError
        consumes an attempt and polling continues. Wall-clock time is capped
        at max_attempts * interval_ms even if a read hangs.

        Args:
            target: OperationTarget or an async callable taking the handle id
            handle: Handle returned by submission
            policy: Attempt/interval bound

        Returns:
            Succeeded, Failed or TimedOut outcome
        """
        known = self._terminal.get(handle.id)
        if known is not None:
            return known

        query = target.get_operation_status if isinstance(target, OperationTarget) else target
        loop = asyncio.get_running_loop()
        deadline = loop.time() + policy.budget_seconds
        reads = 0

        for attempt in range(1, policy.max_attempts + 1):
            remaining = deadline - loop.time()
            if remaining <= 0:
                break

            report = None
            reads += 1
            try:
                report = await asyncio.wait_for(query(handle.id), timeout=remaining)
            except asyncio.TimeoutError:
                logger.warning(f"Status read for {handle.id} exceeded polling budget")
                break
            except TransportError as e:
                logger.warning(
                    f"Status read {attempt}/{policy.max_attempts} for {handle.id} failed: {e}"
                )

            if report is not None and report.status == ReportedStatus.SUCCESS:
                logger.info(f"Operation {handle.id} succeeded after {reads} reads")
                return self._remember(
                    OperationOutcome.succeeded(handle.id, result=report.result, attempts=reads)
                )

            if report is not None and report.status == ReportedStatus.FAILED:
                logger.warning(f"Operation {handle.id} failed: {report.reason}")
                return self._remember(
                    OperationOutcome.failed(
                        handle.id, reason=report.reason or "Operation failed", attempts=reads
                    )
                )

            logger.debug(f"Operation {handle.id} pending ({attempt}/{policy.max_attempts})")

            if attempt < policy.max_attempts:
                await self._sleep(min(policy.interval_seconds, max(deadline - loop.time(), 0)))

        logger.warning(f"Gave up waiting for {handle.id} after {reads} reads")
        return OperationOutcome.timed_out(handle.id, attempts=reads)
