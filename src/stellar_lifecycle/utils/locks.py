"""Single-flight gate for install-side resource work.

The ledger does not deduplicate install transactions, so work that may
submit one (install, restore, TTL extension) runs through a gate keyed by
resource fingerprint. Concurrent callers asking for the same operation on
the same key join the flight already in the air and share its result.
Different operations on one key run one after the other.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from stellar_lifecycle.errors import LockTimeoutError

logger = logging.getLogger(__name__)


class SingleFlight:
    """Per-process gate owned by one orchestrator.

    Example:
        gate = SingleFlight(timeout=30.0)
        result = await gate.run(fingerprint.hex, "ensure_installed", install)
    """

    def __init__(self, timeout: Optional[float] = None):
        """Initialize the gate.

        Args:
            timeout: Longest wait for a key held by another operation
                (None or 0 waits forever)
        """
        self.timeout = timeout
        self._locks: dict[str, asyncio.Lock] = {}
        self._flights: dict[tuple[str, str], asyncio.Task] = {}

    def in_flight(self, key: str, operation: str) -> bool:
        return (key, operation) in self._flights

    async def run(self, key: str, operation: str, work: Callable[[], Awaitable[Any]]) -> Any:
        """Run work under the key, or join the same operation already running.

        Returns:
            Result of the flight this caller ran or joined

        Raises:
            LockTimeoutError: The key stayed busy past the timeout
            Whatever work raises, for every caller of that flight
        """
        flight = (key, operation)
        task = self._flights.get(flight)
        if task is None:
            task = asyncio.ensure_future(self._fly(key, operation, work))
            self._flights[flight] = task
            task.add_done_callback(lambda _: self._flights.pop(flight, None))
        else:
            logger.debug(f"Joining in-flight {operation} for resource {key[:16]}")

        # A cancelled caller must not cancel the flight other callers share
        return await asyncio.shield(task)

    async def _fly(self, key: str, operation: str, work: Callable[[], Awaitable[Any]]) -> Any:
        lock = self._locks.setdefault(key, asyncio.Lock())

        try:
            if self.timeout:
                await asyncio.wait_for(lock.acquire(), timeout=self.timeout)
            else:
                await lock.acquire()
        except asyncio.TimeoutError:
            logger.warning(f"Resource {key[:16]} busy for {self.timeout}s, giving up on {operation}")
            raise LockTimeoutError(key, self.timeout, operation)

        logger.debug(f"Gate acquired for resource {key[:16]}: {operation}")
        try:
            return await work()
        finally:
            lock.release()
            logger.debug(f"Gate released for resource {key[:16]}: {operation}")
