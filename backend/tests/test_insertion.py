"""Tests for insertion-time record checks.

Exercises RecordEngine.evaluate_new_result, apply_new_result_flags and the
diagnostic check_personal_best / check_season_best against a real store.
"""
import pytest
import pytest_asyncio

from recordkeeper.records.engine import RecordEngine
from recordkeeper.records.partition import derive_partition_key
from recordkeeper.records.types import EligibilityParams, RecordFlags
from recordkeeper.repositories.base import ReferenceNotFound

from tests.conftest import (
    ADULT_ATHLETE,
    CHILD_ATHLETE,
    HURDLES_60M,
    LONG_JUMP,
    OTHER_ATHLETE,
    SHOT_PUT,
    SPRINT_100M,
    fetch_flags,
    insert_result,
)


async def evaluate(session_factory, athlete_id, discipline_id, value, date, **params) -> RecordFlags:
    async with session_factory() as session:
        engine = RecordEngine.for_session(session)
        return await engine.evaluate_new_result(
            athlete_id, discipline_id, value, date, EligibilityParams(**params)
        )


class TestFirstResult:
    """Scenario A: first result in a partition."""

    @pytest.mark.asyncio
    async def test_first_result_is_pb_and_sb(self, session_factory):
        """Any valid value with no prior results is both PB and SB."""
        flags = await evaluate(session_factory, ADULT_ATHLETE, SPRINT_100M, 13.20, "2025-05-10")
        assert flags == RecordFlags(True, True)

    @pytest.mark.asyncio
    async def test_other_athletes_results_do_not_count(self, session_factory):
        await insert_result(session_factory, OTHER_ATHLETE, SPRINT_100M, "2025-05-01", 11.00)
        flags = await evaluate(session_factory, ADULT_ATHLETE, SPRINT_100M, 13.20, "2025-05-10")
        assert flags == RecordFlags(True, True)


class TestLowerIsBetter:
    """Scenario B: timed sprint with an existing PB of 12.50."""

    @pytest_asyncio.fixture(autouse=True)
    async def existing_pb(self, session_factory):
        await insert_result(
            session_factory, ADULT_ATHLETE, SPRINT_100M, "2025-05-01", 12.50,
            wind=0.5, is_personal_best=True, is_season_best=True,
        )

    @pytest.mark.asyncio
    async def test_slower_is_not_pb(self, session_factory):
        flags = await evaluate(session_factory, ADULT_ATHLETE, SPRINT_100M, 12.60, "2025-06-01", wind=0.0)
        assert flags == RecordFlags(False, False)

    @pytest.mark.asyncio
    async def test_faster_is_pb(self, session_factory):
        flags = await evaluate(session_factory, ADULT_ATHLETE, SPRINT_100M, 12.40, "2025-06-01", wind=0.0)
        assert flags == RecordFlags(True, True)

    @pytest.mark.asyncio
    async def test_tie_is_not_pb(self, session_factory):
        """A tie keeps the incumbent."""
        flags = await evaluate(session_factory, ADULT_ATHLETE, SPRINT_100M, 12.50, "2025-06-01", wind=0.0)
        assert flags == RecordFlags(False, False)

    @pytest.mark.asyncio
    async def test_new_season_gets_sb_only(self, session_factory):
        """A slower result in a new year is that year's first SB."""
        flags = await evaluate(session_factory, ADULT_ATHLETE, SPRINT_100M, 12.80, "2026-05-01", wind=0.0)
        assert flags == RecordFlags(False, True)


class TestHigherIsBetter:
    """Distance disciplines improve upward."""

    @pytest.mark.asyncio
    async def test_longer_jump_is_pb(self, session_factory):
        await insert_result(session_factory, ADULT_ATHLETE, LONG_JUMP, "2025-05-01", 5.10, wind=1.0)
        assert await evaluate(session_factory, ADULT_ATHLETE, LONG_JUMP, 5.20, "2025-06-01", wind=1.0) == (True, True)
        assert await evaluate(session_factory, ADULT_ATHLETE, LONG_JUMP, 5.00, "2025-06-01", wind=1.0) == (False, False)


class TestWindEligibility:
    """Scenarios C and D: wind-assisted candidates."""

    @pytest.mark.asyncio
    async def test_assisted_candidate_is_not_pb_at_fifteen(self, session_factory):
        """Scenario C: a superior but wind-assisted result gets no flags."""
        await insert_result(session_factory, ADULT_ATHLETE, SPRINT_100M, "2025-05-01", 12.50, wind=1.5)
        flags = await evaluate(session_factory, ADULT_ATHLETE, SPRINT_100M, 12.10, "2025-06-01", wind=2.5)
        assert flags == RecordFlags(False, False)

    @pytest.mark.asyncio
    async def test_assisted_candidate_is_pb_at_ten(self, session_factory):
        """Scenario D: below the age threshold wind does not block the record."""
        await insert_result(session_factory, CHILD_ATHLETE, SPRINT_100M, "2025-05-01", 14.50, wind=1.5)
        flags = await evaluate(session_factory, CHILD_ATHLETE, SPRINT_100M, 14.10, "2025-06-01", wind=2.5)
        assert flags == RecordFlags(True, True)

    @pytest.mark.asyncio
    async def test_assisted_existing_result_is_not_the_bar(self, session_factory):
        """The comparison bar is the best eligible result, not the raw best."""
        await insert_result(session_factory, ADULT_ATHLETE, SPRINT_100M, "2025-05-01", 12.00, wind=3.0)
        await insert_result(session_factory, ADULT_ATHLETE, SPRINT_100M, "2025-05-02", 12.60, wind=1.0)
        flags = await evaluate(session_factory, ADULT_ATHLETE, SPRINT_100M, 12.30, "2025-06-01", wind=1.0)
        assert flags == RecordFlags(True, True)

    @pytest.mark.asyncio
    async def test_limit_reading_is_legal(self, session_factory):
        await insert_result(session_factory, ADULT_ATHLETE, SPRINT_100M, "2025-05-01", 12.50, wind=0.0)
        flags = await evaluate(session_factory, ADULT_ATHLETE, SPRINT_100M, 12.40, "2025-06-01", wind=2.0)
        assert flags == RecordFlags(True, True)


class TestStatus:
    """Only valid results take part in records."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["nm", "dns", "dnf", "dq"])
    async def test_non_valid_candidate_gets_no_flags(self, session_factory, status):
        flags = await evaluate(session_factory, ADULT_ATHLETE, SPRINT_100M, 10.00, "2025-06-01", status=status)
        assert flags == RecordFlags(False, False)

    @pytest.mark.asyncio
    async def test_non_valid_rows_are_ignored(self, session_factory):
        await insert_result(session_factory, ADULT_ATHLETE, SPRINT_100M, "2025-05-01", 11.00, status="dq")
        flags = await evaluate(session_factory, ADULT_ATHLETE, SPRINT_100M, 12.90, "2025-06-01")
        assert flags == RecordFlags(True, True)

    @pytest.mark.asyncio
    async def test_null_status_rows_count(self, session_factory):
        await insert_result(session_factory, ADULT_ATHLETE, SPRINT_100M, "2025-05-01", 12.00, status=None)
        flags = await evaluate(session_factory, ADULT_ATHLETE, SPRINT_100M, 12.90, "2025-06-01")
        assert flags == RecordFlags(False, False)


class TestPartitions:
    """Scenario E and partition isolation at insertion."""

    @pytest.mark.asyncio
    async def test_each_weight_is_its_own_partition(self, session_factory):
        """Scenario E: 3 kg and 4 kg shot puts are both first results."""
        assert await evaluate(
            session_factory, ADULT_ATHLETE, SHOT_PUT, 8.00, "2025-06-01", equipment_weight=3.0
        ) == (True, True)
        await insert_result(session_factory, ADULT_ATHLETE, SHOT_PUT, "2025-06-01", 8.00, equipment_weight=3.0)

        assert await evaluate(
            session_factory, ADULT_ATHLETE, SHOT_PUT, 7.00, "2025-06-02", equipment_weight=4.0
        ) == (True, True)

    @pytest.mark.asyncio
    async def test_hurdle_heights_are_separate(self, session_factory):
        await insert_result(session_factory, ADULT_ATHLETE, HURDLES_60M, "2025-06-01", 9.50, hurdle_height=76)
        assert await evaluate(
            session_factory, ADULT_ATHLETE, HURDLES_60M, 10.10, "2025-06-02", hurdle_height=84
        ) == (True, True)
        assert await evaluate(
            session_factory, ADULT_ATHLETE, HURDLES_60M, 9.70, "2025-06-02", hurdle_height=76
        ) == (False, False)

    @pytest.mark.asyncio
    async def test_unspecified_weight_does_not_compete_with_weighed_throws(self, session_factory):
        await insert_result(session_factory, ADULT_ATHLETE, SHOT_PUT, "2025-06-01", 9.00, equipment_weight=3.0)
        assert await evaluate(session_factory, ADULT_ATHLETE, SHOT_PUT, 7.00, "2025-06-02") == (True, True)

    @pytest.mark.asyncio
    async def test_demotion_stays_in_partition(self, session_factory):
        """A new 4 kg PB must not clear the 3 kg PB."""
        three = await insert_result(
            session_factory, ADULT_ATHLETE, SHOT_PUT, "2025-06-01", 8.00,
            equipment_weight=3.0, is_personal_best=True, is_season_best=True,
        )
        four = await insert_result(
            session_factory, ADULT_ATHLETE, SHOT_PUT, "2025-06-01", 6.50,
            equipment_weight=4.0, is_personal_best=True, is_season_best=True,
        )

        async with session_factory() as session:
            engine = RecordEngine.for_session(session)
            key = derive_partition_key(SHOT_PUT, "throws", equipment_weight=4.0)
            await engine.apply_new_result_flags(ADULT_ATHLETE, key, 2025, RecordFlags(True, True))
            await session.commit()

        flags = await fetch_flags(session_factory, ADULT_ATHLETE, SHOT_PUT)
        assert flags[three] == (True, True)
        assert flags[four] == (False, False)

    @pytest.mark.asyncio
    async def test_sb_demotion_is_year_scoped(self, session_factory):
        last_year = await insert_result(
            session_factory, ADULT_ATHLETE, SPRINT_100M, "2024-06-01", 12.80, is_season_best=True,
        )
        this_year = await insert_result(
            session_factory, ADULT_ATHLETE, SPRINT_100M, "2025-06-01", 12.90, is_season_best=True,
        )

        async with session_factory() as session:
            engine = RecordEngine.for_session(session)
            key = derive_partition_key(SPRINT_100M, "sprints")
            await engine.apply_new_result_flags(ADULT_ATHLETE, key, 2025, RecordFlags(False, True))
            await session.commit()

        flags = await fetch_flags(session_factory, ADULT_ATHLETE, SPRINT_100M)
        assert flags[last_year] == (False, True)
        assert flags[this_year] == (False, False)


class TestReferences:
    """Unknown athlete or discipline ids."""

    @pytest.mark.asyncio
    async def test_unknown_discipline(self, session_factory):
        with pytest.raises(ReferenceNotFound):
            await evaluate(session_factory, ADULT_ATHLETE, 999, 12.0, "2025-06-01")

    @pytest.mark.asyncio
    async def test_unknown_athlete(self, session_factory):
        with pytest.raises(ReferenceNotFound):
            await evaluate(session_factory, 999, SPRINT_100M, 12.0, "2025-06-01")


class TestDiagnosticChecks:
    """Tests for check_personal_best and check_season_best."""

    @pytest.mark.asyncio
    async def test_check_personal_best(self, session_factory):
        await insert_result(session_factory, ADULT_ATHLETE, SPRINT_100M, "2024-06-01", 12.50)
        async with session_factory() as session:
            engine = RecordEngine.for_session(session)
            assert await engine.check_personal_best(ADULT_ATHLETE, SPRINT_100M, 12.40)
            assert not await engine.check_personal_best(ADULT_ATHLETE, SPRINT_100M, 12.50)

    @pytest.mark.asyncio
    async def test_check_ignores_wind(self, session_factory):
        """Diagnostic checks compare against the raw best valid value."""
        await insert_result(session_factory, ADULT_ATHLETE, SPRINT_100M, "2025-06-01", 12.00, wind=3.5)
        async with session_factory() as session:
            engine = RecordEngine.for_session(session)
            assert not await engine.check_personal_best(ADULT_ATHLETE, SPRINT_100M, 12.20)

    @pytest.mark.asyncio
    async def test_check_season_best(self, session_factory):
        await insert_result(session_factory, ADULT_ATHLETE, SPRINT_100M, "2024-06-01", 12.00)
        await insert_result(session_factory, ADULT_ATHLETE, SPRINT_100M, "2025-06-01", 12.60)
        async with session_factory() as session:
            engine = RecordEngine.for_session(session)
            assert await engine.check_season_best(ADULT_ATHLETE, SPRINT_100M, 12.50, 2025)
            assert not await engine.check_season_best(ADULT_ATHLETE, SPRINT_100M, 12.50, 2024)
            assert await engine.check_season_best(ADULT_ATHLETE, SPRINT_100M, 15.00, 2023)

    @pytest.mark.asyncio
    async def test_check_covers_every_implement_weight(self, session_factory):
        """A weighted throw is part of the discipline-wide best."""
        await insert_result(session_factory, ADULT_ATHLETE, SHOT_PUT, "2025-06-01", 12.00, equipment_weight=4.0)
        async with session_factory() as session:
            engine = RecordEngine.for_session(session)
            assert not await engine.check_personal_best(ADULT_ATHLETE, SHOT_PUT, 5.00)
            assert await engine.check_personal_best(ADULT_ATHLETE, SHOT_PUT, 12.50)
            assert not await engine.check_season_best(ADULT_ATHLETE, SHOT_PUT, 11.00, 2025)

    @pytest.mark.asyncio
    async def test_check_covers_every_hurdle_height(self, session_factory):
        await insert_result(session_factory, ADULT_ATHLETE, HURDLES_60M, "2025-06-01", 9.40, hurdle_height=76)
        await insert_result(session_factory, ADULT_ATHLETE, HURDLES_60M, "2025-06-02", 9.90)
        async with session_factory() as session:
            engine = RecordEngine.for_session(session)
            assert not await engine.check_personal_best(ADULT_ATHLETE, HURDLES_60M, 9.60)
            assert await engine.check_personal_best(ADULT_ATHLETE, HURDLES_60M, 9.30)

    @pytest.mark.asyncio
    async def test_check_ignores_invalid_results(self, session_factory):
        await insert_result(
            session_factory, ADULT_ATHLETE, SHOT_PUT, "2025-06-01", 14.00, equipment_weight=3.0, status="dq",
        )
        async with session_factory() as session:
            engine = RecordEngine.for_session(session)
            assert await engine.check_personal_best(ADULT_ATHLETE, SHOT_PUT, 5.00)
