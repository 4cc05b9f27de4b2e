"""Services package."""

from expense_tracker.services.storage import (
    CorruptRecord,
    ExpenseStorageInterface,
    FirestoreExpenseStorage,
    InMemoryExpenseStorage,
    NotFoundError,
    PermissionError,
    QueryUnsupported,
    StorageError,
    StorageUnavailable,
    create_expense_storage,
)

__all__ = [
    "CorruptRecord",
    "ExpenseStorageInterface",
    "FirestoreExpenseStorage",
    "InMemoryExpenseStorage",
    "NotFoundError",
    "PermissionError",
    "QueryUnsupported",
    "StorageError",
    "StorageUnavailable",
    "create_expense_storage",
]
