"""
Storage Factory

Picks the storage backend once, at startup, from explicit settings.
The returned store is then handed to the API and the dashboard;
nothing deeper in the code decides which backend is active.
"""

from datetime import timezone, tzinfo
from typing import Optional

import structlog

from expense_tracker.config import FirebaseSettings
from expense_tracker.services.storage.firebase import FirestoreClient, FirestoreExpenseStorage
from expense_tracker.services.storage.id_allocator import FirestoreIdAllocator
from expense_tracker.services.storage.interface import ExpenseStorageInterface
from expense_tracker.services.storage.memory import InMemoryExpenseStorage


logger = structlog.get_logger(__name__)


def create_expense_storage(
    firebase_settings: Optional[FirebaseSettings] = None,
    tz: tzinfo = timezone.utc,
) -> ExpenseStorageInterface:
    """
    Create the expense store for this process.

    Args:
        firebase_settings: Firestore configuration. When missing, or when no
            project id is set, the in-memory store is used.
        tz: Timezone for month boundaries

    Returns:
        A FirestoreExpenseStorage or an InMemoryExpenseStorage
    """
    if firebase_settings is not None and firebase_settings.is_configured:
        client = FirestoreClient(firebase_settings)
        storage: ExpenseStorageInterface = FirestoreExpenseStorage(
            client=client,
            allocator=FirestoreIdAllocator(client),
            tz=tz,
        )
    else:
        storage = InMemoryExpenseStorage(tz=tz)

    logger.info("storage_selected", backend=storage.backend_name)
    return storage
