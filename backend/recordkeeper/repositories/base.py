"""Base repository pattern implementation.

This module provides the base classes for all repositories of the record
engine: shared-session data access, transactional grouping, context-tagged
logging and a single error taxonomy (StoreError and its subclasses).

Usage:
    class MyRepository(AsyncSessionRepository[MyEntity]):
        async def find_by_id(self, id: int) -> Optional[MyEntity]:
            ...
"""

from typing import TypeVar, Generic, Optional, Any, Dict
from contextlib import asynccontextmanager
from dataclasses import dataclass
import logging

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError

logger = logging.getLogger(__name__)


# Generic type for entity types
T = TypeVar("T")


class StoreError(Exception):
    """Base exception for result store, catalog and registry operations."""

    def __init__(self, message: str, operation: str = "", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.details = details or {}

    def __str__(self) -> str:
        if self.operation:
            return f"[{self.operation}] {self.message}"
        return self.message


class StoreConnectionError(StoreError):
    """Raised when a connection to the data store cannot be established or is lost."""
    pass


class QueryError(StoreError):
    """Raised when a query or write fails to execute."""
    pass


class NotFoundError(StoreError):
    """Raised when a requested entity is not found."""
    pass


class ReferenceNotFound(NotFoundError):
    """Raised when an athlete or discipline id does not resolve.

    Distinct from transient failures: it signals a data integrity problem
    such as a concurrently deleted athlete.
    """
    pass


def wrap_store_error(error: Exception, operation: str, **details) -> StoreError:
    """Translate a driver/ORM exception into the store error taxonomy."""
    if isinstance(error, StoreError):
        return error
    if isinstance(error, (InterfaceError, OperationalError, OSError)) or (
        isinstance(error, DBAPIError) and error.connection_invalidated
    ):
        return StoreConnectionError(str(error), operation, details)
    return QueryError(str(error), operation, details)


@dataclass
class RepositoryContext:
    """Context information for repository operations.

    Carries the id of the unit of work a statement belongs to, so the log
    lines of one create, update or rebuild can be grouped.
    """
    operation_id: Optional[str] = None


class BaseRepository(Generic[T]):
    """Base class for repositories.

    Provides:
    - Generic type hints for entity types
    - Operation and error logging tagged with the repository context

    Type Parameters:
        T: The entity type this repository manages
    """

    def __init__(self, context: Optional[RepositoryContext] = None):
        """Initialize repository with optional context.

        Args:
            context: Optional context information for log correlation
        """
        self._context = context or RepositoryContext()
        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    def context(self) -> RepositoryContext:
        """Get the current repository context."""
        return self._context

    def _log_operation(self, operation: str, **kwargs) -> None:
        """Log repository operation with context."""
        extra = {
            "operation": operation,
            "repository": self.__class__.__name__,
            **kwargs,
        }
        if self._context.operation_id:
            extra["operation_id"] = self._context.operation_id

        self._logger.debug(f"Repository operation: {operation}", extra=extra)

    def _log_error(self, operation: str, error: Exception, **kwargs) -> None:
        """Log repository error with context."""
        extra = {
            "operation": operation,
            "repository": self.__class__.__name__,
            "error_type": type(error).__name__,
            **kwargs,
        }
        if self._context.operation_id:
            extra["operation_id"] = self._context.operation_id

        self._logger.error(
            f"Repository error in {operation}: {error}",
            extra=extra,
            exc_info=True,
        )


class AsyncSessionRepository(BaseRepository[T]):
    """Base repository for SQLAlchemy async session-based data access.

    Repositories borrow a session opened by the caller so that several of
    them can write inside one transaction. The session is never closed here.
    """

    def __init__(self, session, context: Optional[RepositoryContext] = None):
        """Initialize with a shared session.

        Args:
            session: AsyncSession shared with the other repositories of the unit of work
            context: Optional context information
        """
        super().__init__(context)
        self.session = session

    @asynccontextmanager
    async def transaction(self):
        """Context manager for database transactions.

        Usage:
            async with repo.transaction():
                await repo.create(result)
                await repo.set_flags(result.id, personal_best=True)
                # Commits if no exceptions, rolls back otherwise
        """
        try:
            yield self.session
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            self._log_error("transaction", e)
            raise
