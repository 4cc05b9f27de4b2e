"""
Storage Services Package

Provides the abstract expense storage interface and its two implementations:
Firestore (durable) and in-memory. Use create_expense_storage() to get one.
"""

from expense_tracker.services.storage.interface import (
    CorruptRecord,
    ExpenseStorageInterface,
    IdAllocatorInterface,
    NotFoundError,
    PermissionError,
    QueryUnsupported,
    StorageError,
    StorageUnavailable,
    month_bounds,
)
from expense_tracker.services.storage.codec import (
    TimestampEncoding,
    classify_timestamp,
    decode_expense,
    encode_expense,
    resolve_timestamp,
)
from expense_tracker.services.storage.firebase import (
    FirestoreClient,
    FirestoreExpenseStorage,
)
from expense_tracker.services.storage.id_allocator import (
    FirestoreIdAllocator,
    InMemoryIdAllocator,
)
from expense_tracker.services.storage.memory import InMemoryExpenseStorage
from expense_tracker.services.storage.factory import create_expense_storage

__all__ = [
    # Interfaces
    "ExpenseStorageInterface",
    "IdAllocatorInterface",
    "month_bounds",
    # Exceptions
    "CorruptRecord",
    "NotFoundError",
    "PermissionError",
    "QueryUnsupported",
    "StorageError",
    "StorageUnavailable",
    # Codec
    "TimestampEncoding",
    "classify_timestamp",
    "decode_expense",
    "encode_expense",
    "resolve_timestamp",
    # Firestore implementation
    "FirestoreClient",
    "FirestoreExpenseStorage",
    "FirestoreIdAllocator",
    # In-memory implementation
    "InMemoryExpenseStorage",
    "InMemoryIdAllocator",
    # Factory
    "create_expense_storage",
]
