"""Service layer: transactional result operations."""

from recordkeeper.services.locks import PartitionLocks, partition_locks
from recordkeeper.services.results import ResultService

__all__ = ["PartitionLocks", "partition_locks", "ResultService"]
