"""
Sequential ID Allocation

Expenses get small integer ids (1, 2, 3, ...) rather than UUIDs.

DESIGN DECISION: The durable allocator keeps the last issued id in a
counter document and bumps it inside a Firestore transaction. Firestore
retries the transaction on write conflicts, so two concurrent callers never
see the same value. We do not add locking of our own on top of that.

The in-memory allocator only has to be unique within one process.
"""

import threading

import structlog
from google.cloud import firestore

from expense_tracker.services.storage.firebase import FirestoreClient, translate_errors
from expense_tracker.services.storage.interface import IdAllocatorInterface, StorageUnavailable


logger = structlog.get_logger(__name__)


def _increment_counter(transaction, counter_ref) -> int:
    """Read-modify-write of one counter document. Runs inside a transaction."""
    snapshot = counter_ref.get(transaction=transaction)

    if not snapshot.exists:
        transaction.set(counter_ref, {"value": 1})
        return 1

    current = (snapshot.to_dict() or {}).get("value") or 0
    new_value = int(current) + 1
    transaction.update(counter_ref, {"value": new_value})
    return new_value


_allocate_in_transaction = firestore.transactional(_increment_counter)


class FirestoreIdAllocator(IdAllocatorInterface):
    """Counter documents in Firestore, one per entity kind."""

    def __init__(self, client: FirestoreClient):
        self._client = client

    async def next_id(self, kind: str) -> int:
        with translate_errors(f"allocate {kind} id"):
            counter_ref = self._client.counters().document(kind)
            transaction = self._client.transaction()
            try:
                value = _allocate_in_transaction(transaction, counter_ref)
            except ValueError as e:
                # Raised by the client once its own retries are exhausted
                raise StorageUnavailable(f"Failed to allocate {kind} id: {e}") from e

        logger.debug("id_allocated", kind=kind, value=value)
        return value


class InMemoryIdAllocator(IdAllocatorInterface):
    """
    Process-local counters.

    Not durable: ids restart at 1 with the process.
    """

    def __init__(self):
        self._counters: dict[str, int] = {}
        # Flask's dev server handles requests on several threads
        self._lock = threading.Lock()

    async def next_id(self, kind: str) -> int:
        with self._lock:
            value = self._counters.get(kind, 0) + 1
            self._counters[kind] = value
        return value
