"""Record consistency engine.

Keeps the derived ``is_personal_best`` / ``is_season_best`` flags of result
rows correct. Two paths exist:

- Insertion: ``evaluate_new_result`` answers whether a result about to be
  inserted becomes the PB and/or SB of its partition, and
  ``apply_new_result_flags`` demotes the previous holders. Only valid for
  rows that do not exist yet.
- Rebuild: ``recalculate`` clears and recomputes every flag of one
  athlete's partition. Used after edits and deletions, when stored flags can
  no longer be trusted.

The engine never commits and holds no state between calls: callers group
each operation in one store transaction (see ResultService), and every
decision re-reads current rows from the store.

Usage:
    engine = RecordEngine.for_session(session)
    flags = await engine.evaluate_new_result(athlete_id, discipline_id, 12.4, "2025-06-01", params)
"""

import logging
from typing import TYPE_CHECKING, Iterable, Optional

from recordkeeper.db_models import Result
from recordkeeper.records.comparator import is_better
from recordkeeper.records.eligibility import is_record_eligible, is_wind_assisted
from recordkeeper.records.partition import derive_partition_key
from recordkeeper.records.types import (
    ComparisonDirection,
    EligibilityParams,
    PartitionKey,
    RecalculationSummary,
    RecordContext,
    RecordFlags,
    ResultStatus,
    parse_result_year,
)
from recordkeeper.repositories.base import RepositoryContext

if TYPE_CHECKING:
    from recordkeeper.repositories.reference import AthleteRepository, DisciplineRepository
    from recordkeeper.repositories.results import ResultRepository

logger = logging.getLogger(__name__)


class RecordEngine:
    """PB/SB evaluation and rebuild for one store session."""

    def __init__(
        self,
        results: "ResultRepository",
        disciplines: "DisciplineRepository",
        athletes: "AthleteRepository",
    ):
        self.results = results
        self.disciplines = disciplines
        self.athletes = athletes

    @classmethod
    def for_session(cls, session, context: Optional[RepositoryContext] = None) -> "RecordEngine":
        """Build an engine whose repositories all share ``session``."""
        # Import here to avoid circular imports
        from recordkeeper.repositories.reference import AthleteRepository, DisciplineRepository
        from recordkeeper.repositories.results import ResultRepository

        return cls(
            ResultRepository(session=session, context=context),
            DisciplineRepository(session=session, context=context),
            AthleteRepository(session=session, context=context),
        )

    async def resolve_context(self, athlete_id: int, discipline_id: int) -> RecordContext:
        """Look up discipline and athlete data needed for record decisions.

        Raises:
            ReferenceNotFound: If either id does not resolve
            StoreError: If the lookup itself fails
        """
        discipline = await self.disciplines.get(discipline_id)
        birth_year = await self.athletes.get_birth_year(athlete_id)
        return RecordContext(
            athlete_id=athlete_id,
            discipline_id=discipline_id,
            discipline_name=discipline.name,
            category=discipline.category,
            direction=ComparisonDirection.from_flag(discipline.lower_is_better),
            wind_sensitive=discipline.wind_sensitive,
            birth_year=birth_year,
        )

    @staticmethod
    def first_eligible(
        rows: Iterable[Result],
        context: RecordContext,
        fallback_year: Optional[int] = None,
    ) -> Optional[Result]:
        """Return the first row that is not wind-assisted.

        ``rows`` must already be ordered best first; each row is judged with
        the year of its own date.
        """
        for row in rows:
            row_year = parse_result_year(row.date, fallback_year)
            if not is_wind_assisted(
                row.wind,
                context.discipline_name,
                context.birth_year,
                row_year,
                wind_sensitive=context.wind_sensitive,
            ):
                return row
        return None

    async def current_best(
        self,
        context: RecordContext,
        key: PartitionKey,
        year: Optional[int] = None,
    ) -> Optional[Result]:
        """Best eligible valid result of a partition, optionally within one season."""
        rows = await self.results.find_ranked(context.athlete_id, key, context.direction, year=year)
        return self.first_eligible(rows, context, fallback_year=year)

    # ------------------------------------------------------------------
    # Insertion path
    # ------------------------------------------------------------------

    async def evaluate_new_result(
        self,
        athlete_id: int,
        discipline_id: int,
        value: float,
        date: str,
        params: Optional[EligibilityParams] = None,
    ) -> RecordFlags:
        """Decide whether a result about to be inserted is a new PB and/or SB.

        Args:
            athlete_id: Athlete id
            discipline_id: Discipline id
            value: Measured value of the new result
            date: ISO date of the new result
            params: Wind, apparatus and status of the new result

        Returns:
            RecordFlags for the new row
        """
        params = params or EligibilityParams()
        if not ResultStatus.is_valid(params.status):
            return RecordFlags(False, False)

        context = await self.resolve_context(athlete_id, discipline_id)
        year = parse_result_year(date)

        if not is_record_eligible(params, context, year):
            logger.debug(
                f"Result for athlete {athlete_id} in {context.discipline_name} is wind-assisted "
                f"(wind={params.wind}), not eligible for records"
            )
            return RecordFlags(False, False)

        key = derive_partition_key(
            discipline_id, context.category, params.equipment_weight, params.hurdle_height
        )

        pb_holder = await self.current_best(context, key)
        is_pb = is_better(value, pb_holder.value if pb_holder else None, context.direction)

        # Beating the all-time best also beats every season's best
        if is_pb:
            is_sb = True
        else:
            sb_holder = await self.current_best(context, key, year=year)
            is_sb = is_better(value, sb_holder.value if sb_holder else None, context.direction)

        logger.debug(
            f"New result athlete={athlete_id} {key.describe()} value={value} year={year}: "
            f"pb={is_pb} sb={is_sb}"
        )
        return RecordFlags(is_pb, is_sb)

    async def apply_new_result_flags(
        self,
        athlete_id: int,
        key: PartitionKey,
        year: int,
        flags: RecordFlags,
    ) -> None:
        """Demote the previous PB/SB holders before a flagged result is inserted.

        PB demotion covers the whole partition, SB demotion the partition
        within ``year``. Rows in other partitions are never touched.
        """
        if flags.is_personal_best:
            await self.results.clear_flags(athlete_id, key, personal_best=True, season_best=False)
        if flags.is_season_best:
            await self.results.clear_flags(athlete_id, key, personal_best=False, season_best=True, year=year)

    async def check_personal_best(self, athlete_id: int, discipline_id: int, value: float) -> bool:
        """Diagnostic PB check without wind or apparatus context.

        Compares against the best valid value of the whole discipline, every
        implement weight and hurdle height included. Read only.
        """
        context = await self.resolve_context(athlete_id, discipline_id)
        best = await self.results.find_best_value(athlete_id, discipline_id, context.direction)
        return is_better(value, best, context.direction)

    async def check_season_best(self, athlete_id: int, discipline_id: int, value: float, year: int) -> bool:
        """Diagnostic SB check for one season, without wind or apparatus context."""
        context = await self.resolve_context(athlete_id, discipline_id)
        best = await self.results.find_best_value(athlete_id, discipline_id, context.direction, year=year)
        return is_better(value, best, context.direction)

    # ------------------------------------------------------------------
    # Rebuild path
    # ------------------------------------------------------------------

    async def recalculate(
        self,
        athlete_id: int,
        discipline_id: int,
        equipment_weight: Optional[float] = None,
        hurdle_height: Optional[int] = None,
    ) -> RecalculationSummary:
        """Rebuild PB and SB flags of one athlete's partition.

        The partition is derived from the apparatus attributes the affected
        result had before its edit or deletion. Catalog and registry lookups
        happen before the first write so a failed lookup leaves every flag
        untouched. Running it twice without intervening writes yields the
        same assignment.

        Args:
            athlete_id: Athlete id
            discipline_id: Discipline id
            equipment_weight: Implement weight of the affected result
            hurdle_height: Hurdle height of the affected result

        Returns:
            RecalculationSummary naming the new PB and SB holders
        """
        context = await self.resolve_context(athlete_id, discipline_id)
        key = derive_partition_key(discipline_id, context.category, equipment_weight, hurdle_height)
        summary = RecalculationSummary(athlete_id=athlete_id, partition=key)

        summary.cleared = await self.results.clear_flags(athlete_id, key)

        # All-time pass: the best row may be wind-assisted, so scan down to the first eligible one
        ranked = await self.results.find_ranked(athlete_id, key, context.direction)
        pb_row = self.first_eligible(ranked, context)
        if pb_row is not None:
            await self.results.set_flags(pb_row.id, personal_best=True)
            summary.personal_best_id = pb_row.id

        # Season pass: one independent scan per year present in the partition
        for season in await self.results.find_season_years(athlete_id, key):
            year = parse_result_year(season)
            season_rows = await self.results.find_ranked(athlete_id, key, context.direction, year=year)
            sb_row = self.first_eligible(season_rows, context, fallback_year=year)
            if sb_row is not None:
                await self.results.set_flags(sb_row.id, season_best=True)
                summary.season_best_ids[year] = sb_row.id

        logger.info(
            f"Recalculated records for athlete {athlete_id} {key.describe()}: "
            f"pb={summary.personal_best_id} sb={summary.season_best_ids}"
        )
        return summary
