"""Repository for result rows.

Provides the Result Store operations the record engine consumes: point
reads, partition-scoped ranked reads, distinct season years and the flag
updates restricted to ``is_personal_best`` / ``is_season_best``.

Every partition-scoped statement is built from one filter builder that takes
a PartitionKey, so the standard, weight and height partitions share the same
queries.
"""

import logging
from typing import Optional, List, Tuple

from sqlalchemy import select, update, or_, func

from recordkeeper.db_models import Result
from recordkeeper.records.types import ComparisonDirection, PartitionDimension, PartitionKey
from recordkeeper.repositories.base import AsyncSessionRepository, wrap_store_error

logger = logging.getLogger(__name__)


def valid_status_clause():
    """Rows with status 'valid' or no status at all."""
    return or_(Result.status.is_(None), Result.status == "valid")


def year_clause(year: int):
    """Rows whose ISO date starts with ``year``."""
    return func.substr(Result.date, 1, 4) == f"{year:04d}"


def partition_clauses(athlete_id: int, key: PartitionKey) -> list:
    """WHERE clauses selecting one athlete's rows in one partition.

    A split discipline's standard partition only holds rows recorded without
    the apparatus attribute, so partitions never overlap.
    """
    clauses = [
        Result.athlete_id == athlete_id,
        Result.discipline_id == key.discipline_id,
    ]
    if key.dimension is PartitionDimension.EQUIPMENT_WEIGHT:
        column = Result.equipment_weight
    elif key.dimension is PartitionDimension.HURDLE_HEIGHT:
        column = Result.hurdle_height
    else:
        return clauses

    if key.qualifier is None:
        clauses.append(column.is_(None))
    else:
        clauses.append(column == key.qualifier)
    return clauses


class ResultRepository(AsyncSessionRepository[Result]):
    """Repository for result rows and their derived record flags."""

    async def create(self, result: Result) -> Result:
        """Insert a new result row.

        Args:
            result: Result instance to persist

        Returns:
            The persisted Result with its id assigned
        """
        self._log_operation("create", athlete_id=result.athlete_id, discipline_id=result.discipline_id)

        try:
            self.session.add(result)
            await self.session.flush()
            return result
        except Exception as e:
            self._log_error("create", e)
            raise wrap_store_error(e, "create")

    async def find_by_id(self, result_id: int) -> Optional[Result]:
        """Find a result by id.

        Args:
            result_id: Result id

        Returns:
            Result instance or None
        """
        self._log_operation("find_by_id", result_id=result_id)

        try:
            result = await self.session.execute(
                select(Result)
                .where(Result.id == result_id)
                .execution_options(populate_existing=True)
            )
            return result.scalar_one_or_none()
        except Exception as e:
            self._log_error("find_by_id", e)
            raise wrap_store_error(e, "find_by_id", result_id=result_id)

    async def find_by_athlete(
        self,
        athlete_id: Optional[int] = None,
        discipline_id: Optional[int] = None,
    ) -> List[Result]:
        """List results, newest first, optionally filtered by athlete and discipline."""
        self._log_operation("find_by_athlete", athlete_id=athlete_id, discipline_id=discipline_id)

        try:
            stmt = select(Result).execution_options(populate_existing=True)
            if athlete_id is not None:
                stmt = stmt.where(Result.athlete_id == athlete_id)
            if discipline_id is not None:
                stmt = stmt.where(Result.discipline_id == discipline_id)
            result = await self.session.execute(stmt.order_by(Result.date.desc(), Result.id.desc()))
            return list(result.scalars().all())
        except Exception as e:
            self._log_error("find_by_athlete", e)
            raise wrap_store_error(e, "find_by_athlete")

    async def find_ranked(
        self,
        athlete_id: int,
        key: PartitionKey,
        direction: ComparisonDirection,
        year: Optional[int] = None,
    ) -> List[Result]:
        """Valid results of one partition, best value first.

        Equal values keep their chronological order so the earliest result
        of a tie is scanned first.

        Args:
            athlete_id: Athlete id
            key: Partition to read
            direction: Discipline comparison direction
            year: Restrict to one season when given

        Returns:
            Ordered list of Result rows
        """
        self._log_operation("find_ranked", athlete_id=athlete_id, partition=key.describe(), year=year)

        try:
            stmt = (
                select(Result)
                .where(*partition_clauses(athlete_id, key), valid_status_clause())
                .execution_options(populate_existing=True)
            )
            if year is not None:
                stmt = stmt.where(year_clause(year))
            stmt = stmt.order_by(direction.best_first(Result.value), Result.date.asc(), Result.id.asc())
            result = await self.session.execute(stmt)
            return list(result.scalars().all())
        except Exception as e:
            self._log_error("find_ranked", e)
            raise wrap_store_error(e, "find_ranked", athlete_id=athlete_id, partition=key.describe())

    async def find_best_value(
        self,
        athlete_id: int,
        discipline_id: int,
        direction: ComparisonDirection,
        year: Optional[int] = None,
    ) -> Optional[float]:
        """Best valid value of a discipline across every apparatus class.

        Args:
            athlete_id: Athlete id
            discipline_id: Discipline id
            direction: Discipline comparison direction
            year: Restrict to one season when given

        Returns:
            The MIN or MAX value, or None when the athlete has no valid result
        """
        self._log_operation("find_best_value", athlete_id=athlete_id, discipline_id=discipline_id, year=year)

        try:
            if direction is ComparisonDirection.LOWER_IS_BETTER:
                best = func.min(Result.value)
            else:
                best = func.max(Result.value)
            stmt = select(best).where(
                Result.athlete_id == athlete_id,
                Result.discipline_id == discipline_id,
                valid_status_clause(),
            )
            if year is not None:
                stmt = stmt.where(year_clause(year))
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()
        except Exception as e:
            self._log_error("find_best_value", e)
            raise wrap_store_error(e, "find_best_value", athlete_id=athlete_id, discipline_id=discipline_id)

    async def find_season_years(self, athlete_id: int, key: PartitionKey) -> List[str]:
        """Distinct leading year strings among valid results of a partition."""
        self._log_operation("find_season_years", athlete_id=athlete_id, partition=key.describe())

        try:
            season = func.substr(Result.date, 1, 4)
            result = await self.session.execute(
                select(season)
                .where(*partition_clauses(athlete_id, key), valid_status_clause())
                .distinct()
                .order_by(season)
            )
            return [year for year in result.scalars().all() if year]
        except Exception as e:
            self._log_error("find_season_years", e)
            raise wrap_store_error(e, "find_season_years", athlete_id=athlete_id, partition=key.describe())

    async def clear_flags(
        self,
        athlete_id: int,
        key: PartitionKey,
        personal_best: bool = True,
        season_best: bool = True,
        year: Optional[int] = None,
    ) -> int:
        """Clear PB and/or SB flags on every row of a partition.

        Only the rows matching the exact partition (and season, when given)
        are touched.

        Returns:
            Number of rows updated
        """
        values = {}
        if personal_best:
            values["is_personal_best"] = False
        if season_best:
            values["is_season_best"] = False
        if not values:
            return 0

        self._log_operation("clear_flags", athlete_id=athlete_id, partition=key.describe(), year=year, **values)

        try:
            stmt = update(Result).where(*partition_clauses(athlete_id, key))
            if year is not None:
                stmt = stmt.where(year_clause(year))
            result = await self.session.execute(
                stmt.values(**values).execution_options(synchronize_session=False)
            )
            return result.rowcount
        except Exception as e:
            self._log_error("clear_flags", e)
            raise wrap_store_error(e, "clear_flags", athlete_id=athlete_id, partition=key.describe())

    async def set_flags(
        self,
        result_id: int,
        personal_best: Optional[bool] = None,
        season_best: Optional[bool] = None,
    ) -> None:
        """Set the PB and/or SB flag of a single row."""
        values = {}
        if personal_best is not None:
            values["is_personal_best"] = personal_best
        if season_best is not None:
            values["is_season_best"] = season_best
        if not values:
            return

        self._log_operation("set_flags", result_id=result_id, **values)

        try:
            await self.session.execute(
                update(Result)
                .where(Result.id == result_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
        except Exception as e:
            self._log_error("set_flags", e)
            raise wrap_store_error(e, "set_flags", result_id=result_id)

    async def delete(self, result: Result) -> None:
        """Delete a result row."""
        self._log_operation("delete", result_id=result.id)

        try:
            await self.session.delete(result)
            await self.session.flush()
        except Exception as e:
            self._log_error("delete", e)
            raise wrap_store_error(e, "delete", result_id=result.id)

    async def find_partition_inputs(self, athlete_id: int) -> List[Tuple[int, Optional[float], Optional[int]]]:
        """Distinct (discipline_id, equipment_weight, hurdle_height) triples of an athlete."""
        self._log_operation("find_partition_inputs", athlete_id=athlete_id)

        try:
            result = await self.session.execute(
                select(Result.discipline_id, Result.equipment_weight, Result.hurdle_height)
                .where(Result.athlete_id == athlete_id)
                .distinct()
            )
            return [tuple(row) for row in result.all()]
        except Exception as e:
            self._log_error("find_partition_inputs", e)
            raise wrap_store_error(e, "find_partition_inputs", athlete_id=athlete_id)

    async def find_athlete_ids(self) -> List[int]:
        """Ids of every athlete that has at least one result."""
        self._log_operation("find_athlete_ids")

        try:
            result = await self.session.execute(
                select(Result.athlete_id).distinct().order_by(Result.athlete_id)
            )
            return list(result.scalars().all())
        except Exception as e:
            self._log_error("find_athlete_ids", e)
            raise wrap_store_error(e, "find_athlete_ids")


__all__ = ["ResultRepository", "partition_clauses", "valid_status_clause", "year_clause"]
