"""Query and aggregation package."""

from expense_tracker.queries.summary import (
    CategoryTotal,
    DailyTotal,
    MonthlySummary,
    SummaryService,
    calculate_total,
    group_expenses_by_date,
    summarize_expenses,
)

__all__ = [
    "CategoryTotal",
    "DailyTotal",
    "MonthlySummary",
    "SummaryService",
    "calculate_total",
    "group_expenses_by_date",
    "summarize_expenses",
]
