"""Tests for the per-partition lock registry."""
import asyncio

import pytest

from recordkeeper.records.types import PartitionDimension, PartitionKey
from recordkeeper.services.locks import PartitionLocks

SPRINT = PartitionKey(1)
SHOT_3KG = PartitionKey(3, PartitionDimension.EQUIPMENT_WEIGHT, 3.0)
SHOT_4KG = PartitionKey(3, PartitionDimension.EQUIPMENT_WEIGHT, 4.0)
SHOT_UNSPECIFIED = PartitionKey(3, PartitionDimension.EQUIPMENT_WEIGHT, None)


class TestPartitionLocks:
    """Tests for PartitionLocks.hold."""

    @pytest.mark.asyncio
    async def test_same_partition_is_serialised(self):
        locks = PartitionLocks()
        active = []
        overlaps = []

        async def worker():
            async with locks.hold([(1, SPRINT)]):
                active.append(1)
                overlaps.append(len(active))
                await asyncio.sleep(0.01)
                active.pop()

        await asyncio.gather(*[worker() for _ in range(5)])

        assert max(overlaps) == 1

    @pytest.mark.asyncio
    async def test_different_partitions_run_concurrently(self):
        locks = PartitionLocks()
        entered = asyncio.Event()
        release = asyncio.Event()

        async def holder():
            async with locks.hold([(1, SHOT_3KG)]):
                entered.set()
                await release.wait()

        task = asyncio.create_task(holder())
        await entered.wait()

        # Would block forever if 4 kg shared the 3 kg lock
        async with locks.hold([(1, SHOT_4KG)]):
            pass
        async with locks.hold([(2, SHOT_3KG)]):
            pass

        release.set()
        await task

    @pytest.mark.asyncio
    async def test_registry_is_emptied_after_use(self):
        locks = PartitionLocks()
        async with locks.hold([(1, SPRINT), (1, SHOT_3KG)]):
            assert len(locks) == 2
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_duplicate_keys_are_taken_once(self):
        locks = PartitionLocks()
        async with locks.hold([(1, SPRINT), (1, SPRINT)]):
            assert len(locks) == 1

    @pytest.mark.asyncio
    async def test_opposite_orders_do_not_deadlock(self):
        """Keys are acquired in a fixed order regardless of argument order."""
        locks = PartitionLocks()

        async def worker(keys):
            for _ in range(10):
                async with locks.hold(keys):
                    await asyncio.sleep(0)

        await asyncio.wait_for(
            asyncio.gather(
                worker([(1, SHOT_UNSPECIFIED), (1, SHOT_4KG)]),
                worker([(1, SHOT_4KG), (1, SHOT_UNSPECIFIED)]),
            ),
            timeout=5,
        )
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_released_on_error(self):
        locks = PartitionLocks()
        with pytest.raises(RuntimeError):
            async with locks.hold([(1, SPRINT)]):
                raise RuntimeError("boom")
        assert len(locks) == 0

        async with locks.hold([(1, SPRINT)]):
            pass

    @pytest.mark.asyncio
    async def test_disabled_registry_never_blocks(self):
        locks = PartitionLocks(enabled=False)
        async with locks.hold([(1, SPRINT)]):
            async with locks.hold([(1, SPRINT)]):
                assert len(locks) == 0
