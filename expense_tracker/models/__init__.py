"""
Data Models Package

This package contains all Pydantic models used in the Expense Tracker.
All data flowing through the system must conform to these schemas.
"""

from expense_tracker.models.expense import (
    EXPENSE_TYPE_LABELS,
    EXPENSE_TYPES,
    Expense,
    ExpenseCategory,
    InsertExpense,
    ValidationError,
    ValidationIssue,
    get_expense_type_label,
    validate_create,
)
from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Expense models
    "EXPENSE_TYPE_LABELS",
    "EXPENSE_TYPES",
    "Expense",
    "ExpenseCategory",
    "InsertExpense",
    "ValidationError",
    "ValidationIssue",
    "get_expense_type_label",
    "validate_create",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
