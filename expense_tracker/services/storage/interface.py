"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Run on Firestore in production
2. Run entirely in memory when no Firebase project is configured
3. Write the contract tests once and run them against both

The interface is intentionally small: expenses are created and read,
never updated or deleted.
"""

import calendar
from abc import ABC, abstractmethod
from datetime import datetime, timezone, tzinfo
from typing import Callable, Optional

from expense_tracker.models.expense import Expense, InsertExpense


def month_bounds(
    year: int,
    month: int,
    tz: tzinfo = timezone.utc,
) -> tuple[datetime, datetime]:
    """
    First and last instant of a calendar month.

    Args:
        year: Calendar year
        month: 0-based month (0 = January, 11 = December)
        tz: Timezone the month is measured in

    Returns:
        (start, end) where end is the last day at 23:59:59.999

    Raises:
        ValueError: If month is outside 0..11
    """
    if not 0 <= month <= 11:
        raise ValueError(f"Month must be between 0 and 11, got {month}")

    calendar_month = month + 1
    _, last_day = calendar.monthrange(year, calendar_month)

    start = datetime(year, calendar_month, 1, tzinfo=tz)
    end = datetime(year, calendar_month, last_day, 23, 59, 59, 999000, tzinfo=tz)
    return start, end


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ExpenseStorageInterface(ABC):
    """
    Abstract interface for expense storage operations.

    Any storage implementation (Firestore, in-memory, ...)
    must implement these methods. Callers only ever see this contract.
    """

    def __init__(
        self,
        tz: tzinfo = timezone.utc,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._tz = tz
        self._clock = clock

    def _now(self) -> datetime:
        """Creation timestamp for a new record (aware, UTC unless the clock says otherwise)."""
        if self._clock is not None:
            return ensure_aware(self._clock())
        return datetime.now(timezone.utc)

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Short name reported by the health check ("firebase" or "memory")."""
        pass

    @property
    def month_timezone(self) -> tzinfo:
        """Timezone used to compute month boundaries."""
        return self._tz

    @abstractmethod
    async def create_expense(self, payload: InsertExpense) -> Expense:
        """
        Create and persist a new expense.

        The store assigns the id and stamps createdAt with the current time.

        Args:
            payload: A validated creation payload

        Returns:
            The full stored record

        Raises:
            StorageError: If the id cannot be allocated or the write fails
        """
        pass

    @abstractmethod
    async def get_all_expenses(self) -> list[Expense]:
        """
        List every expense, newest first.

        Returns:
            All records (empty list for an empty store)
        """
        pass

    @abstractmethod
    async def get_expense_by_id(self, expense_id: int) -> Optional[Expense]:
        """
        Retrieve an expense by its ID.

        Args:
            expense_id: The expense's identifier

        Returns:
            The expense if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_expenses_by_date_range(
        self,
        start: datetime,
        end: datetime,
    ) -> list[Expense]:
        """
        List expenses with start <= createdAt <= end, newest first.

        Args:
            start: Inclusive lower bound
            end: Inclusive upper bound

        Returns:
            Matching expenses

        Raises:
            QueryUnsupported: If the backend needs an index that is missing
        """
        pass

    async def get_expenses_by_month(self, year: int, month: int) -> list[Expense]:
        """
        List expenses recorded in one calendar month, newest first.

        Args:
            year: Calendar year
            month: 0-based month (0 = January)

        Returns:
            Matching expenses
        """
        start, end = month_bounds(year, month, self._tz)
        return await self.get_expenses_by_date_range(start, end)


class IdAllocatorInterface(ABC):
    """
    Abstract interface for sequential id allocation.

    Ids handed out for one kind are unique and increasing, and are
    never handed out twice.
    """

    @abstractmethod
    async def next_id(self, kind: str) -> int:
        """
        Allocate the next id for an entity kind (e.g. "expenses").

        Raises:
            StorageUnavailable: If the allocation cannot be completed
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class PermissionError(StorageError):
    """Storage backend denied the operation."""
    pass


class QueryUnsupported(StorageError):
    """Query needs backend support (e.g. a composite index) that is not provisioned."""
    pass


class CorruptRecord(StorageError):
    """A stored document could not be decoded into an expense."""

    def __init__(self, message: str, doc_id: Optional[str] = None):
        super().__init__(message)
        self.doc_id = doc_id


class StorageUnavailable(StorageError):
    """Could not reach the storage backend, or it gave up retrying."""
    pass
