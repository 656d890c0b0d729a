"""Result CRUD orchestration.

ResultService is the only writer of result rows. Every mutation runs as one
store transaction that keeps the PB/SB flags of the touched partitions
consistent:

- create: evaluate the new result, demote the previous holders, insert
- update: apply the changes, rebuild the former partition and, when the
  row moved, the new one
- delete: delete, rebuild the former partition

Mutations of the same (athlete, partition) are serialised by PartitionLocks
and transient connection failures are retried with tenacity before the
error is surfaced.

Usage:
    service = ResultService()
    result = await service.create_result(ResultCreate(athlete_id=1, ...))
"""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, List, Optional, Tuple, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from recordkeeper.config import settings
from recordkeeper.db_models import Discipline, Result
from recordkeeper.metrics import OperationTimer, RecordMetricsLogger, record_metrics_logger
from recordkeeper.models import ResultCreate, ResultUpdate
from recordkeeper.records.engine import RecordEngine
from recordkeeper.records.partition import derive_partition_key
from recordkeeper.records.types import (
    EligibilityParams,
    PartitionKey,
    RecalculationSummary,
    parse_result_year,
)
from recordkeeper.repositories.base import (
    NotFoundError,
    RepositoryContext,
    StoreConnectionError,
    wrap_store_error,
)
from recordkeeper.services.locks import PartitionLocks, partition_locks

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Columns that an update may not set to NULL
REQUIRED_FIELDS = frozenset({
    "athlete_id", "discipline_id", "date", "value", "result_type", "is_national_record",
})

# (athlete_id, discipline_id, equipment_weight, hurdle_height)
PartitionInputs = Tuple[int, int, Optional[float], Optional[int]]


def _inputs_of(result: Result) -> PartitionInputs:
    return (result.athlete_id, result.discipline_id, result.equipment_weight, result.hurdle_height)


class ResultService:
    """Transactional result operations with record flag maintenance."""

    def __init__(
        self,
        session_factory=None,
        locks: Optional[PartitionLocks] = None,
        metrics: Optional[RecordMetricsLogger] = None,
        retry_attempts: Optional[int] = None,
    ):
        """Initialize the service.

        Args:
            session_factory: SQLAlchemy async session factory (default: application factory)
            locks: Partition lock registry (default: process-wide registry)
            metrics: Operation metrics logger
            retry_attempts: Attempts for operations failing on store connectivity
        """
        self._session_factory = session_factory
        self.locks = locks if locks is not None else partition_locks
        self.metrics = metrics or record_metrics_logger
        self.retry_attempts = max(1, retry_attempts or settings.store_retry_attempts)

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    def _get_session_factory(self):
        if self._session_factory is None:
            # Import here to avoid circular imports
            from recordkeeper.database import get_session_factory
            self._session_factory = get_session_factory()
        return self._session_factory

    @asynccontextmanager
    async def _unit_of_work(self, operation: str):
        """Open a session and yield an engine bound to one transaction."""
        factory = self._get_session_factory()
        context = RepositoryContext(operation_id=f"{operation}-{uuid.uuid4().hex[:8]}")
        async with factory() as session:
            engine = RecordEngine.for_session(session, context)
            try:
                async with engine.results.transaction():
                    yield engine
            except SQLAlchemyError as e:
                raise wrap_store_error(e, "transaction")

    async def _execute(self, operation: str, work: Callable[[RecordEngine], Awaitable[T]]) -> T:
        """Run ``work`` in a fresh transaction, retrying on connection loss."""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=0.1, max=settings.store_retry_max_wait_seconds),
            retry=retry_if_exception_type(StoreConnectionError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                async with self._unit_of_work(operation) as engine:
                    return await work(engine)

    @staticmethod
    async def _partition_key(
        engine: RecordEngine,
        discipline_id: int,
        equipment_weight: Optional[float] = None,
        hurdle_height: Optional[int] = None,
    ) -> PartitionKey:
        discipline = await engine.disciplines.get(discipline_id)
        return derive_partition_key(discipline_id, discipline.category, equipment_weight, hurdle_height)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_result(self, data: ResultCreate) -> Result:
        """Insert a result and assign its PB/SB flags.

        Raises:
            ReferenceNotFound: If the athlete or discipline does not exist
            StoreError: If the store fails; nothing is written
        """
        key = await self._execute(
            "create",
            lambda engine: self._partition_key(
                engine, data.discipline_id, data.equipment_weight, data.hurdle_height
            ),
        )

        async def work(engine: RecordEngine) -> Result:
            await engine.athletes.get(data.athlete_id)
            params = EligibilityParams(
                wind=data.wind,
                equipment_weight=data.equipment_weight,
                hurdle_height=data.hurdle_height,
                status=data.status,
            )
            flags = await engine.evaluate_new_result(
                data.athlete_id, data.discipline_id, data.value, data.date, params
            )
            # Demote first so the new row is not caught by the partition-wide clear
            await engine.apply_new_result_flags(
                data.athlete_id, key, parse_result_year(data.date), flags
            )
            result = Result(
                **data.model_dump(),
                is_personal_best=flags.is_personal_best,
                is_season_best=flags.is_season_best,
            )
            return await engine.results.create(result)

        with OperationTimer() as timer:
            try:
                async with self.locks.hold([(data.athlete_id, key)]):
                    result = await self._execute("create", work)
            except Exception as e:
                self.metrics.log_operation(
                    "create", timer.elapsed_ms, athlete_id=data.athlete_id,
                    partition=key.describe(), error=e,
                )
                raise

        self.metrics.log_operation(
            "create",
            timer.elapsed_ms,
            athlete_id=data.athlete_id,
            partition=key.describe(),
            personal_best=result.is_personal_best,
            season_best=result.is_season_best,
        )
        logger.info(
            f"Created result {result.id} for athlete {result.athlete_id} "
            f"({key.describe()}): pb={result.is_personal_best} sb={result.is_season_best}"
        )
        return result

    async def update_result(self, result_id: int, changes: ResultUpdate) -> Result:
        """Apply field changes and rebuild the affected partitions.

        Args:
            result_id: Result id
            changes: Fields to change; unset fields are left alone

        Raises:
            NotFoundError: If the result does not exist
            ReferenceNotFound: If a changed athlete or discipline does not exist
        """
        updates = {
            name: value
            for name, value in changes.model_dump(exclude_unset=True).items()
            if value is not None or name not in REQUIRED_FIELDS
        }

        async def plan(engine: RecordEngine) -> List[Tuple[int, PartitionKey]]:
            result = await engine.results.find_by_id(result_id)
            if result is None:
                raise NotFoundError(f"Result {result_id} not found", "update_result", {"result_id": result_id})
            old = _inputs_of(result)
            new = tuple(updates.get(name, current) for name, current in zip(
                ("athlete_id", "discipline_id", "equipment_weight", "hurdle_height"), old
            ))
            return [
                (old[0], await self._partition_key(engine, *old[1:])),
                (new[0], await self._partition_key(engine, *new[1:])),
            ]

        async def work(engine: RecordEngine) -> Tuple[Result, List[RecalculationSummary]]:
            result = await engine.results.find_by_id(result_id)
            if result is None:
                raise NotFoundError(f"Result {result_id} not found", "update_result", {"result_id": result_id})

            old = _inputs_of(result)
            for name, value in updates.items():
                setattr(result, name, value)
            new = _inputs_of(result)
            if new[0] != old[0]:
                await engine.athletes.get(new[0])
            await engine.results.session.flush()

            summaries = [await engine.recalculate(*old)]
            new_key = await self._partition_key(engine, *new[1:])
            if new[0] != old[0] or new_key != summaries[0].partition:
                summaries.append(await engine.recalculate(*new))

            refreshed = await engine.results.find_by_id(result_id)
            return refreshed, summaries

        keys = await self._execute("update", plan)
        with OperationTimer() as timer:
            try:
                async with self.locks.hold(keys):
                    result, summaries = await self._execute("update", work)
            except Exception as e:
                self.metrics.log_operation(
                    "update", timer.elapsed_ms, athlete_id=keys[0][0],
                    partition=keys[0][1].describe(), error=e,
                )
                raise

        self.metrics.log_operation(
            "update",
            timer.elapsed_ms,
            athlete_id=result.athlete_id,
            partition=summaries[-1].partition.describe(),
            personal_best=result.is_personal_best,
            season_best=result.is_season_best,
        )
        logger.info(f"Updated result {result_id}, rebuilt {len(summaries)} partition(s)")
        return result

    async def delete_result(self, result_id: int) -> bool:
        """Delete a result and rebuild the partition it belonged to.

        Returns:
            True if the result was deleted, False if it did not exist
        """
        async def plan(engine: RecordEngine) -> Optional[Tuple[int, PartitionKey]]:
            result = await engine.results.find_by_id(result_id)
            if result is None:
                return None
            return result.athlete_id, await self._partition_key(engine, *_inputs_of(result)[1:])

        async def work(engine: RecordEngine) -> Optional[RecalculationSummary]:
            result = await engine.results.find_by_id(result_id)
            if result is None:
                return None
            old = _inputs_of(result)
            await engine.results.delete(result)
            return await engine.recalculate(*old)

        lock_key = await self._execute("delete", plan)
        if lock_key is None:
            logger.info(f"Result {result_id} not found, nothing to delete")
            return False

        with OperationTimer() as timer:
            try:
                async with self.locks.hold([lock_key]):
                    summary = await self._execute("delete", work)
            except Exception as e:
                self.metrics.log_operation(
                    "delete", timer.elapsed_ms, athlete_id=lock_key[0],
                    partition=lock_key[1].describe(), error=e,
                )
                raise

        if summary is None:
            return False

        self.metrics.log_operation(
            "delete",
            timer.elapsed_ms,
            athlete_id=summary.athlete_id,
            partition=summary.partition.describe(),
        )
        logger.info(f"Deleted result {result_id} ({summary.partition.describe()})")
        return True

    # ------------------------------------------------------------------
    # Rebuilds
    # ------------------------------------------------------------------

    async def recalculate_partition(
        self,
        athlete_id: int,
        discipline_id: int,
        equipment_weight: Optional[float] = None,
        hurdle_height: Optional[int] = None,
    ) -> RecalculationSummary:
        """Rebuild PB/SB flags of one partition."""
        key = await self._execute(
            "recalculate",
            lambda engine: self._partition_key(engine, discipline_id, equipment_weight, hurdle_height),
        )

        with OperationTimer() as timer:
            try:
                async with self.locks.hold([(athlete_id, key)]):
                    summary = await self._execute(
                        "recalculate",
                        lambda engine: engine.recalculate(
                            athlete_id, discipline_id, equipment_weight, hurdle_height
                        ),
                    )
            except Exception as e:
                self.metrics.log_operation(
                    "recalculate", timer.elapsed_ms, athlete_id=athlete_id,
                    partition=key.describe(), error=e,
                )
                raise

        self.metrics.log_operation(
            "recalculate",
            timer.elapsed_ms,
            athlete_id=athlete_id,
            partition=key.describe(),
            personal_best=summary.personal_best_id is not None,
            season_best=bool(summary.season_best_ids),
        )
        return summary

    async def partitions_of(self, athlete_id: int) -> List[PartitionKey]:
        """Every partition the athlete has results in, one entry per key."""
        async def work(engine: RecordEngine) -> List[PartitionKey]:
            await engine.athletes.get(athlete_id)
            keys: List[PartitionKey] = []
            for discipline_id, weight, height in await engine.results.find_partition_inputs(athlete_id):
                key = await self._partition_key(engine, discipline_id, weight, height)
                if key not in keys:
                    keys.append(key)
            return keys

        return await self._execute("partitions_of", work)

    async def recalculate_athlete(self, athlete_id: int) -> List[RecalculationSummary]:
        """Rebuild every partition of one athlete in a single transaction.

        Raises:
            ReferenceNotFound: If the athlete does not exist
        """
        keys = await self.partitions_of(athlete_id)

        async def work(engine: RecordEngine) -> List[RecalculationSummary]:
            return [
                await engine.recalculate(athlete_id, key.discipline_id, key.equipment_weight, key.hurdle_height)
                for key in keys
            ]

        with OperationTimer() as timer:
            try:
                async with self.locks.hold([(athlete_id, key) for key in keys]):
                    summaries = await self._execute("recalculate", work)
            except Exception as e:
                self.metrics.log_operation(
                    "recalculate", timer.elapsed_ms, athlete_id=athlete_id, error=e,
                )
                raise

        self.metrics.log_operation("recalculate", timer.elapsed_ms, athlete_id=athlete_id)
        logger.info(f"Rebuilt {len(summaries)} partition(s) for athlete {athlete_id}")
        return summaries

    async def athlete_ids(self) -> List[int]:
        """Ids of every athlete with at least one result."""
        return await self._execute("athlete_ids", lambda engine: engine.results.find_athlete_ids())

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_result(self, result_id: int) -> Optional[Result]:
        return await self._execute("get", lambda engine: engine.results.find_by_id(result_id))

    async def list_results(
        self,
        athlete_id: Optional[int] = None,
        discipline_id: Optional[int] = None,
    ) -> List[Result]:
        return await self._execute(
            "list", lambda engine: engine.results.find_by_athlete(athlete_id, discipline_id)
        )

    async def list_disciplines(self) -> List[Discipline]:
        return await self._execute("list_disciplines", lambda engine: engine.disciplines.list_all())

    async def check_personal_best(self, athlete_id: int, discipline_id: int, value: float) -> bool:
        """Would ``value`` beat the athlete's current best? Read only."""
        return await self._execute(
            "check_personal_best",
            lambda engine: engine.check_personal_best(athlete_id, discipline_id, value),
        )

    async def check_season_best(self, athlete_id: int, discipline_id: int, value: float, year: int) -> bool:
        """Would ``value`` beat the athlete's best of ``year``? Read only."""
        return await self._execute(
            "check_season_best",
            lambda engine: engine.check_season_best(athlete_id, discipline_id, value, year),
        )


__all__ = ["ResultService", "REQUIRED_FIELDS"]
