"""Repository pattern implementations for data access.

This package provides repository classes that abstract data access for the
result store and its read-only reference data (discipline catalog, athlete
registry).

Usage:
    from recordkeeper.repositories import ResultRepository

    async with session_factory() as session:
        repo = ResultRepository(session=session)
        async with repo.transaction():
            rows = await repo.find_by_athlete(athlete_id=1)
"""

from recordkeeper.repositories.base import (
    BaseRepository,
    AsyncSessionRepository,
    RepositoryContext,
    StoreError,
    StoreConnectionError,
    QueryError,
    NotFoundError,
    ReferenceNotFound,
    wrap_store_error,
)
from recordkeeper.repositories.results import ResultRepository
from recordkeeper.repositories.reference import DisciplineRepository, AthleteRepository

__all__ = [
    # Base classes
    "BaseRepository",
    "AsyncSessionRepository",
    "RepositoryContext",
    # Exceptions
    "StoreError",
    "StoreConnectionError",
    "QueryError",
    "NotFoundError",
    "ReferenceNotFound",
    "wrap_store_error",
    # Concrete repositories
    "ResultRepository",
    "DisciplineRepository",
    "AthleteRepository",
]
