"""Repositories for read-only reference data.

The Discipline Catalog and Athlete Registry are owned by other layers of the
application; the record engine only resolves single records by id. An id
that does not resolve raises ReferenceNotFound.
"""

import logging
from typing import List, Optional

from sqlalchemy import select

from recordkeeper.db_models import Athlete, Discipline
from recordkeeper.repositories.base import (
    AsyncSessionRepository,
    ReferenceNotFound,
    wrap_store_error,
)

logger = logging.getLogger(__name__)


class DisciplineRepository(AsyncSessionRepository[Discipline]):
    """Discipline catalog lookups."""

    async def get(self, discipline_id: int) -> Discipline:
        """Resolve a discipline by id.

        Raises:
            ReferenceNotFound: If the id does not exist
        """
        self._log_operation("get", discipline_id=discipline_id)

        try:
            result = await self.session.execute(
                select(Discipline).where(Discipline.id == discipline_id)
            )
            discipline = result.scalar_one_or_none()
        except Exception as e:
            self._log_error("get", e)
            raise wrap_store_error(e, "get_discipline", discipline_id=discipline_id)

        if discipline is None:
            raise ReferenceNotFound(
                f"Discipline {discipline_id} not found",
                "get_discipline",
                {"discipline_id": discipline_id},
            )
        return discipline

    async def find_by_name(self, name: str) -> Optional[Discipline]:
        self._log_operation("find_by_name", name=name)

        try:
            result = await self.session.execute(
                select(Discipline).where(Discipline.name == name)
            )
            return result.scalar_one_or_none()
        except Exception as e:
            self._log_error("find_by_name", e)
            raise wrap_store_error(e, "find_by_name", name=name)

    async def list_all(self) -> List[Discipline]:
        self._log_operation("list_all")

        try:
            result = await self.session.execute(select(Discipline).order_by(Discipline.id))
            return list(result.scalars().all())
        except Exception as e:
            self._log_error("list_all", e)
            raise wrap_store_error(e, "list_disciplines")

    async def add(self, discipline: Discipline) -> Discipline:
        self._log_operation("add", name=discipline.name)

        try:
            self.session.add(discipline)
            await self.session.flush()
            return discipline
        except Exception as e:
            self._log_error("add", e)
            raise wrap_store_error(e, "add_discipline", name=discipline.name)


class AthleteRepository(AsyncSessionRepository[Athlete]):
    """Athlete registry lookups."""

    async def get(self, athlete_id: int) -> Athlete:
        """Resolve an athlete by id.

        Raises:
            ReferenceNotFound: If the id does not exist
        """
        self._log_operation("get", athlete_id=athlete_id)

        try:
            result = await self.session.execute(
                select(Athlete).where(Athlete.id == athlete_id)
            )
            athlete = result.scalar_one_or_none()
        except Exception as e:
            self._log_error("get", e)
            raise wrap_store_error(e, "get_athlete", athlete_id=athlete_id)

        if athlete is None:
            raise ReferenceNotFound(
                f"Athlete {athlete_id} not found",
                "get_athlete",
                {"athlete_id": athlete_id},
            )
        return athlete

    async def get_birth_year(self, athlete_id: int) -> int:
        athlete = await self.get(athlete_id)
        return athlete.birth_year


__all__ = ["DisciplineRepository", "AthleteRepository"]
