"""Per-customer exclusive sections

Serializes the read-validate-append-write sequence of every mutation on a
customer's tab inside this process. Different customers never contend.
Waiting is bounded: a caller that cannot enter the section within the
timeout gets ConcurrentModificationError instead of queuing forever.
"""

import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator

from src.domain.errors import ConcurrentModificationError

logger = logging.getLogger(__name__)


class CustomerLockRegistry:
    def __init__(self, timeout_seconds: float = 5.0):
        self.timeout_seconds = timeout_seconds
        # Locks disappear once no holder or waiter references them
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, customer_id: str) -> asyncio.Lock:
        lock = self._locks.get(customer_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[customer_id] = lock
        return lock

    def is_locked(self, customer_id: str) -> bool:
        lock = self._locks.get(customer_id)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def exclusive(self, customer_id: str) -> AsyncIterator[None]:
        """
        Hold the customer's section for the duration of the block

        Raises:
            ConcurrentModificationError: If the section is not free within the timeout
        """
        lock = self._lock_for(customer_id)
        try:
            await asyncio.wait_for(lock.acquire(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                f"Timed out after {self.timeout_seconds}s waiting for tab lock of customer {customer_id}"
            )
            raise ConcurrentModificationError(
                f"Another update for customer {customer_id} is still in progress",
                reason=f"lock wait exceeded {self.timeout_seconds}s",
            )
        try:
            yield
        finally:
            lock.release()
