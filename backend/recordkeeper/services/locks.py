"""Per-partition mutual exclusion.

Two concurrent edits of the same athlete's partition could otherwise both
read a stale current best and write conflicting flags. PartitionLocks hands
out one asyncio.Lock per (athlete, partition) so mutations of one partition
run one at a time inside this process. Unrelated partitions never wait on
each other. Cross-process writers still rely on the store's isolation.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Dict, Iterable, List, Tuple

from recordkeeper.config import settings
from recordkeeper.records.types import PartitionKey

logger = logging.getLogger(__name__)

LockKey = Tuple[int, PartitionKey]


def _sort_key(key: LockKey):
    athlete_id, partition = key
    qualifier = partition.qualifier if partition.qualifier is not None else float("-inf")
    return (athlete_id, partition.discipline_id, partition.dimension.value, qualifier)


class PartitionLocks:
    """Registry of keyed asyncio locks.

    Locks are created on first use and dropped once nobody holds or waits
    for them, so the registry does not grow with the number of partitions
    ever touched.
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._locks: Dict[LockKey, asyncio.Lock] = {}
        self._users: Dict[LockKey, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, keys: Iterable[LockKey]):
        """Acquire the locks of every key, in a fixed order, for the block.

        Args:
            keys: (athlete_id, PartitionKey) pairs; duplicates are ignored
        """
        if not self.enabled:
            yield
            return

        ordered: List[LockKey] = sorted(set(keys), key=_sort_key)
        for key in ordered:
            self._users[key] = self._users.get(key, 0) + 1
            self._locks.setdefault(key, asyncio.Lock())

        acquired: List[LockKey] = []
        try:
            for key in ordered:
                await self._locks[key].acquire()
                acquired.append(key)
            yield
        finally:
            for key in reversed(acquired):
                self._locks[key].release()
            for key in ordered:
                self._users[key] -= 1
                if self._users[key] == 0:
                    del self._users[key]
                    del self._locks[key]


# Shared registry so every ResultService in the process serialises on the same locks
partition_locks = PartitionLocks(enabled=settings.partition_locking_enabled)
