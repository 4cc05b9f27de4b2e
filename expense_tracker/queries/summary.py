"""
Monthly Summaries

The grouping and summing behind the month views:
- total spent
- spent per category (pie chart)
- spent per day (bar chart)
- expenses grouped by calendar day (list)

DESIGN DECISION: Aggregation is plain Python over the records a store
returns for the month. Stores stay CRUD-only; this module never writes.
"""

from collections import defaultdict
from datetime import date, timezone, tzinfo
from typing import Iterable

from pydantic import BaseModel, Field

from expense_tracker.models.expense import Expense, get_expense_type_label
from expense_tracker.services.storage import ExpenseStorageInterface


class CategoryTotal(BaseModel):
    """Amount spent in one category."""
    type: str
    label: str
    total: float
    count: int


class DailyTotal(BaseModel):
    """Amount spent on one calendar day."""
    day: date
    total: float


class MonthlySummary(BaseModel):
    """Aggregates for one calendar month."""
    year: int
    month: int = Field(..., ge=0, le=11, description="0-based month")
    total: float = 0.0
    count: int = 0
    by_category: list[CategoryTotal] = Field(default_factory=list)
    by_day: list[DailyTotal] = Field(default_factory=list)

    @property
    def has_data(self) -> bool:
        return self.count > 0


def calculate_total(expenses: Iterable[Expense]) -> float:
    """Sum of amounts, rounded to cents."""
    return round(sum(e.amount for e in expenses), 2)


def group_expenses_by_date(
    expenses: Iterable[Expense],
    tz: tzinfo = timezone.utc,
) -> list[tuple[date, list[Expense]]]:
    """
    Group expenses by the local calendar day they were recorded on.

    Days are newest first; within a day the input order is kept.
    """
    grouped: dict[date, list[Expense]] = defaultdict(list)
    for expense in expenses:
        grouped[expense.created_at.astimezone(tz).date()].append(expense)
    return sorted(grouped.items(), key=lambda item: item[0], reverse=True)


def summarize_expenses(
    expenses: list[Expense],
    year: int,
    month: int,
    tz: tzinfo = timezone.utc,
) -> MonthlySummary:
    """Build the monthly aggregates from a list of that month's expenses."""
    category_totals: dict[str, float] = defaultdict(float)
    category_counts: dict[str, int] = defaultdict(int)
    day_totals: dict[date, float] = defaultdict(float)

    for expense in expenses:
        category_totals[expense.type] += expense.amount
        category_counts[expense.type] += 1
        day_totals[expense.created_at.astimezone(tz).date()] += expense.amount

    by_category = [
        CategoryTotal(
            type=code,
            label=get_expense_type_label(code),
            total=round(total, 2),
            count=category_counts[code],
        )
        for code, total in category_totals.items()
    ]
    by_category.sort(key=lambda c: c.total, reverse=True)

    by_day = [
        DailyTotal(day=day, total=round(total, 2))
        for day, total in sorted(day_totals.items())
    ]

    return MonthlySummary(
        year=year,
        month=month,
        total=calculate_total(expenses),
        count=len(expenses),
        by_category=by_category,
        by_day=by_day,
    )


class SummaryService:
    """
    Reads one month from a store and aggregates it.

    Only returns what the store holds; an empty month is a summary
    with zero totals, not an error.
    """

    def __init__(self, storage: ExpenseStorageInterface):
        self._storage = storage

    async def monthly_summary(self, year: int, month: int) -> MonthlySummary:
        expenses = await self._storage.get_expenses_by_month(year, month)
        return summarize_expenses(
            expenses,
            year=year,
            month=month,
            tz=self._storage.month_timezone,
        )
