"""
In-Memory Storage Implementation

Used when no Firebase project is configured (local development, demos,
tests). Same contract as the Firestore store, but:
- nothing survives a restart
- nothing is shared between processes
"""

import threading
from datetime import datetime, timezone, tzinfo
from typing import Callable, Optional

import structlog

from expense_tracker.models.expense import Expense, InsertExpense
from expense_tracker.services.storage.id_allocator import InMemoryIdAllocator
from expense_tracker.services.storage.interface import (
    ExpenseStorageInterface,
    IdAllocatorInterface,
    ensure_aware,
)


logger = structlog.get_logger(__name__)


class InMemoryExpenseStorage(ExpenseStorageInterface):
    """Expenses kept in a dict keyed by id."""

    def __init__(
        self,
        allocator: Optional[IdAllocatorInterface] = None,
        tz: tzinfo = timezone.utc,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(tz, clock)
        self._allocator = allocator or InMemoryIdAllocator()
        self._expenses: dict[int, Expense] = {}
        # Requests on other threads may write while a listing is built
        self._lock = threading.Lock()

    @property
    def backend_name(self) -> str:
        return "memory"

    def _snapshot(self) -> list[Expense]:
        with self._lock:
            return list(self._expenses.values())

    @staticmethod
    def _newest_first(expenses) -> list[Expense]:
        return sorted(expenses, key=lambda e: e.created_at, reverse=True)

    async def create_expense(self, payload: InsertExpense) -> Expense:
        expense_id = await self._allocator.next_id("expenses")
        expense = Expense(
            id=expense_id,
            amount=payload.amount,
            type=payload.type,
            remarks=payload.remarks or None,
            created_at=self._now(),
        )
        with self._lock:
            self._expenses[expense_id] = expense

        logger.info("expense_created", expense_id=expense_id, backend=self.backend_name)
        return expense.model_copy()

    async def get_all_expenses(self) -> list[Expense]:
        return self._newest_first(e.model_copy() for e in self._snapshot())

    async def get_expense_by_id(self, expense_id: int) -> Optional[Expense]:
        expense = self._expenses.get(expense_id)
        return expense.model_copy() if expense else None

    async def get_expenses_by_date_range(
        self,
        start: datetime,
        end: datetime,
    ) -> list[Expense]:
        start, end = ensure_aware(start), ensure_aware(end)
        return self._newest_first(
            e.model_copy()
            for e in self._snapshot()
            if start <= e.created_at <= end
        )
