"""Pytest configuration and shared fixtures.

Every test gets its own SQLite database file (aiosqlite driver) with the
schema created from the ORM models and a small reference data set that
mirrors the disciplines used throughout the record tests:

    1  100m     sprints          lower is better, wind-sensitive
    2  Pituus   jumps            higher is better, wind-sensitive
    3  Kuula    throws           higher is better, split by implement weight
    4  60m aj   hurdles          lower is better, wind-sensitive, split by height
    5  800m     middleDistance   lower is better

IMPORTANT: Environment variables are set BEFORE any recordkeeper import,
since settings are read when recordkeeper.config is first imported.
"""
import os
import sys

# Add backend to Python path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

# =============================================================================
# CRITICAL: Set environment variables BEFORE any imports
# =============================================================================

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SEED_DISCIPLINES", "false")
os.environ.setdefault("ENABLE_PROMETHEUS_METRICS", "false")
os.environ.setdefault("STORE_RETRY_ATTEMPTS", "3")
os.environ.setdefault("STORE_RETRY_MAX_WAIT_SECONDS", "0.01")

from typing import Dict, Optional, Tuple

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from recordkeeper.database import init_db
from recordkeeper.db_models import Athlete, Discipline, Result
from recordkeeper.metrics import RecordMetricsLogger
from recordkeeper.services.locks import PartitionLocks
from recordkeeper.services.results import ResultService

# Discipline ids
SPRINT_100M = 1
LONG_JUMP = 2
SHOT_PUT = 3
HURDLES_60M = 4
RUN_800M = 5

# Athlete ids; the wind rule applies from age 14 on
ADULT_ATHLETE = 1   # born 2010, 15 in 2025
CHILD_ATHLETE = 2   # born 2015, 10 in 2025
OTHER_ATHLETE = 3   # born 2009

TEST_DISCIPLINES = [
    (SPRINT_100M, "100m", "100 metriä", "sprints", "time", True, True),
    (LONG_JUMP, "Pituus", "Pituushyppy", "jumps", "distance", False, True),
    (SHOT_PUT, "Kuula", "Kuulantyöntö", "throws", "distance", False, False),
    (HURDLES_60M, "60m aj", "60 metriä aidat", "hurdles", "time", True, True),
    (RUN_800M, "800m", "800 metriä", "middleDistance", "time", True, False),
]

TEST_ATHLETES = [
    (ADULT_ATHLETE, "Aino", "Virtanen", 2010),
    (CHILD_ATHLETE, "Eetu", "Korhonen", 2015),
    (OTHER_ATHLETE, "Venla", "Mäkinen", 2009),
]


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Async engine on a fresh SQLite file with all tables created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'records.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    """Session factory over the seeded test database."""
    factory = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with factory() as session:
        for id_, name, full_name, category, unit, lower, wind in TEST_DISCIPLINES:
            session.add(Discipline(
                id=id_,
                name=name,
                full_name=full_name,
                category=category,
                unit=unit,
                lower_is_better=lower,
                wind_sensitive=wind,
            ))
        for id_, first_name, last_name, birth_year in TEST_ATHLETES:
            session.add(Athlete(id=id_, first_name=first_name, last_name=last_name, birth_year=birth_year))
        await session.commit()
    return factory


@pytest.fixture
def metrics():
    """Metrics logger without Prometheus collectors."""
    return RecordMetricsLogger(prometheus_enabled=False)


@pytest.fixture
def service(session_factory, metrics):
    """ResultService bound to the test database with its own lock registry."""
    return ResultService(session_factory=session_factory, locks=PartitionLocks(), metrics=metrics)


# =============================================================================
# Helpers
# =============================================================================


async def insert_result(
    session_factory,
    athlete_id: int,
    discipline_id: int,
    date: str,
    value: float,
    wind: Optional[float] = None,
    equipment_weight: Optional[float] = None,
    hurdle_height: Optional[int] = None,
    status: Optional[str] = "valid",
    is_personal_best: bool = False,
    is_season_best: bool = False,
) -> int:
    """Insert a result row directly, bypassing the record engine."""
    async with session_factory() as session:
        result = Result(
            athlete_id=athlete_id,
            discipline_id=discipline_id,
            date=date,
            value=value,
            result_type="competition",
            wind=wind,
            equipment_weight=equipment_weight,
            hurdle_height=hurdle_height,
            status=status,
            is_personal_best=is_personal_best,
            is_season_best=is_season_best,
        )
        session.add(result)
        await session.commit()
        return result.id


async def fetch_flags(
    session_factory,
    athlete_id: int,
    discipline_id: int,
) -> Dict[int, Tuple[bool, bool]]:
    """Map result id -> (is_personal_best, is_season_best) for one athlete/discipline."""
    async with session_factory() as session:
        rows = await session.execute(
            select(Result.id, Result.is_personal_best, Result.is_season_best)
            .where(Result.athlete_id == athlete_id, Result.discipline_id == discipline_id)
            .order_by(Result.id)
        )
        return {row.id: (row.is_personal_best, row.is_season_best) for row in rows}


async def fetch_result(session_factory, result_id: int) -> Optional[Result]:
    async with session_factory() as session:
        return await session.get(Result, result_id)
