"""Default discipline catalog.

Finnish youth athletics disciplines, keyed by the short names used on
result sheets. Seeding is idempotent: disciplines that already exist (by
name) are left untouched.
"""

import logging
from typing import List, NamedTuple, Optional

from recordkeeper.config import settings
from recordkeeper.db_models import Discipline
from recordkeeper.repositories.reference import DisciplineRepository

logger = logging.getLogger(__name__)


class DisciplineSeed(NamedTuple):
    id: int
    name: str
    full_name: str
    category: str
    unit: str
    lower_is_better: bool


DEFAULT_DISCIPLINES: List[DisciplineSeed] = [
    # Sprints
    DisciplineSeed(1, "40m", "40 metriä", "sprints", "time", True),
    DisciplineSeed(2, "60m", "60 metriä", "sprints", "time", True),
    DisciplineSeed(3, "100m", "100 metriä", "sprints", "time", True),
    DisciplineSeed(4, "200m", "200 metriä", "sprints", "time", True),
    DisciplineSeed(5, "400m", "400 metriä", "sprints", "time", True),
    # Middle and long distance
    DisciplineSeed(6, "800m", "800 metriä", "middleDistance", "time", True),
    DisciplineSeed(7, "1000m", "1000 metriä", "middleDistance", "time", True),
    DisciplineSeed(8, "1500m", "1500 metriä", "middleDistance", "time", True),
    DisciplineSeed(9, "3000m", "3000 metriä", "longDistance", "time", True),
    DisciplineSeed(10, "5000m", "5000 metriä", "longDistance", "time", True),
    DisciplineSeed(11, "10000m", "10000 metriä", "longDistance", "time", True),
    # Hurdles
    DisciplineSeed(12, "60m aj", "60 metriä aidat", "hurdles", "time", True),
    DisciplineSeed(13, "80m aj", "80 metriä aidat", "hurdles", "time", True),
    DisciplineSeed(14, "100m aj", "100 metriä aidat", "hurdles", "time", True),
    DisciplineSeed(15, "300m aj", "300 metriä aidat", "hurdles", "time", True),
    DisciplineSeed(16, "400m aj", "400 metriä aidat", "hurdles", "time", True),
    # Jumps
    DisciplineSeed(17, "Pituus", "Pituushyppy", "jumps", "distance", False),
    DisciplineSeed(18, "Kolmiloikka", "Kolmiloikka", "jumps", "distance", False),
    DisciplineSeed(19, "Korkeus", "Korkeushyppy", "jumps", "distance", False),
    DisciplineSeed(20, "Seiväs", "Seiväshyppy", "jumps", "distance", False),
    # Throws
    DisciplineSeed(21, "Kuula", "Kuulantyöntö", "throws", "distance", False),
    DisciplineSeed(22, "Kiekko", "Kiekonheitto", "throws", "distance", False),
    DisciplineSeed(23, "Keihäs", "Keihäänheitto", "throws", "distance", False),
    DisciplineSeed(24, "Moukari", "Moukarinheitto", "throws", "distance", False),
    DisciplineSeed(25, "Pallo", "Pallonheitto", "throws", "distance", False),
    # Combined events are scored in points, higher is better
    DisciplineSeed(26, "5-ottelu", "5-ottelu", "combined", "distance", False),
    DisciplineSeed(27, "7-ottelu", "7-ottelu", "combined", "distance", False),
]


async def seed_disciplines(session, seeds: Optional[List[DisciplineSeed]] = None) -> int:
    """Insert missing catalog disciplines.

    Args:
        session: AsyncSession to write with; the caller commits
        seeds: Disciplines to ensure (default: DEFAULT_DISCIPLINES)

    Returns:
        Number of disciplines inserted
    """
    repo = DisciplineRepository(session=session)
    wind_sensitive = settings.wind_sensitive_discipline_names
    inserted = 0

    for seed in seeds if seeds is not None else DEFAULT_DISCIPLINES:
        if await repo.find_by_name(seed.name) is not None:
            continue
        await repo.add(Discipline(
            id=seed.id,
            name=seed.name,
            full_name=seed.full_name,
            category=seed.category,
            unit=seed.unit,
            lower_is_better=seed.lower_is_better,
            wind_sensitive=seed.name in wind_sensitive,
        ))
        inserted += 1

    if inserted:
        logger.info(f"Seeded {inserted} discipline(s)")
    return inserted
