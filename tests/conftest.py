"""
Shared fixtures.

The Firestore store is exercised against a small in-process fake of the
client (collections, documents, where/order_by/stream, transactions), so
no test talks to a real project.
"""

from datetime import datetime, timezone

import pytest
from google.cloud import firestore

from expense_tracker.config import FirebaseSettings
from expense_tracker.services.storage import (
    FirestoreClient,
    FirestoreExpenseStorage,
    FirestoreIdAllocator,
    InMemoryExpenseStorage,
)
from expense_tracker.services.storage import id_allocator


# =============================================================================
# FAKE FIRESTORE
# =============================================================================

class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return dict(self._data) if self._data is not None else None


class FakeDocumentRef:
    def __init__(self, collection, doc_id):
        self._collection = collection
        self.id = doc_id

    def get(self, transaction=None):
        self._collection.raise_if_failing()
        return FakeSnapshot(self.id, self._collection.docs.get(self.id))

    def set(self, data):
        self._collection.raise_if_failing()
        self._collection.docs[self.id] = dict(data)

    def update(self, data):
        self._collection.docs[self.id].update(data)


def _sort_key(value):
    # Firestore orders timestamps and strings separately; keep them apart
    if isinstance(value, datetime):
        return (1, value)
    return (0, str(value))


class FakeQuery:
    def __init__(self, collection, filters=(), order=None):
        self._collection = collection
        self._filters = filters
        self._order = order

    def where(self, filter):
        return FakeQuery(self._collection, self._filters + (filter,), self._order)

    def order_by(self, field, direction=firestore.Query.ASCENDING):
        return FakeQuery(self._collection, self._filters, (field, direction))

    def _matches(self, data):
        for f in self._filters:
            value = data.get(f.field_path)
            if not isinstance(value, type(f.value)):
                return False
            if f.op_string == ">=" and not value >= f.value:
                return False
            if f.op_string == "<=" and not value <= f.value:
                return False
        return True

    def stream(self):
        self._collection.raise_if_failing()
        docs = [
            (doc_id, data)
            for doc_id, data in self._collection.docs.items()
            if self._matches(data)
        ]
        if self._order:
            field, direction = self._order
            docs.sort(
                key=lambda item: _sort_key(item[1].get(field)),
                reverse=direction == firestore.Query.DESCENDING,
            )
        return iter([FakeSnapshot(doc_id, data) for doc_id, data in docs])


class FakeCollection(FakeQuery):
    def __init__(self):
        super().__init__(self)
        self.docs = {}
        self.fail_with = None

    def raise_if_failing(self):
        if self.fail_with is not None:
            raise self.fail_with

    def document(self, doc_id):
        return FakeDocumentRef(self, doc_id)


class FakeTransaction:
    def __init__(self, max_attempts=5):
        self.max_attempts = max_attempts

    def set(self, ref, data):
        ref.set(data)

    def update(self, ref, data):
        ref.update(data)


class FakeFirestoreDB:
    def __init__(self):
        self.collections = {}

    def collection(self, name):
        return self.collections.setdefault(name, FakeCollection())

    def transaction(self, max_attempts=5):
        return FakeTransaction(max_attempts)


# =============================================================================
# FIXTURES
# =============================================================================

class FakeClock:
    """Callable clock the stores use for createdAt."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def fake_db():
    return FakeFirestoreDB()


@pytest.fixture
def firestore_client(fake_db):
    settings = FirebaseSettings(_env_file=None, project_id="test-project")
    return FirestoreClient(settings, db=fake_db)


@pytest.fixture
def firestore_storage(firestore_client, clock, monkeypatch):
    # The fake transaction has no begin/commit, so the google transactional
    # retry wrapper is bypassed and only the counter update itself runs
    monkeypatch.setattr(
        id_allocator,
        "_allocate_in_transaction",
        id_allocator._increment_counter,
    )
    return FirestoreExpenseStorage(
        client=firestore_client,
        allocator=FirestoreIdAllocator(firestore_client),
        clock=clock,
    )


@pytest.fixture
def memory_storage(clock):
    return InMemoryExpenseStorage(clock=clock)


@pytest.fixture(params=["memory", "firebase"])
def storage(request):
    """Every contract test runs once per backend."""
    if request.param == "memory":
        return request.getfixturevalue("memory_storage")
    return request.getfixturevalue("firestore_storage")


@pytest.fixture
def fake_transaction():
    return FakeTransaction()
