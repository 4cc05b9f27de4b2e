"""
Tests for expense storage.

The contract tests use the `storage` fixture, which runs each test once
against the in-memory store and once against the Firestore store (over a
fake client). Backend-specific behaviour is tested separately below.
"""

import asyncio
import threading
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest
from google.api_core import exceptions as google_exceptions

from expense_tracker.config import FirebaseSettings
from expense_tracker.models.expense import validate_create
from expense_tracker.services.storage import (
    CorruptRecord,
    FirestoreClient,
    FirestoreExpenseStorage,
    InMemoryExpenseStorage,
    InMemoryIdAllocator,
    PermissionError,
    QueryUnsupported,
    StorageUnavailable,
    create_expense_storage,
    month_bounds,
)
from expense_tracker.services.storage import id_allocator


def run(coro):
    return asyncio.run(coro)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def create_at(storage, clock, when, amount=10, expense_type="lunch", remarks=None):
    clock.now = when
    payload = validate_create({"amount": amount, "type": expense_type, "remarks": remarks})
    return run(storage.create_expense(payload))


class TestMonthBounds:
    """Tests for month boundary arithmetic."""

    def test_january(self):
        start, end = month_bounds(2024, 0)
        assert start == utc(2024, 1, 1)
        assert end == utc(2024, 1, 31, 23, 59, 59, 999000)

    def test_leap_february(self):
        _, end = month_bounds(2024, 1)
        assert end.day == 29

    def test_non_leap_february(self):
        _, end = month_bounds(2023, 1)
        assert end.day == 28

    def test_december_does_not_roll_into_next_year(self):
        start, end = month_bounds(2023, 11)
        assert start == utc(2023, 12, 1)
        assert end == utc(2023, 12, 31, 23, 59, 59, 999000)

    def test_thirty_day_month(self):
        _, end = month_bounds(2024, 3)
        assert end.day == 30

    def test_timezone_is_applied(self):
        tz = ZoneInfo("America/New_York")
        start, _ = month_bounds(2024, 6, tz)
        assert start.tzinfo == tz
        assert start.utcoffset() == timedelta(hours=-4)

    @pytest.mark.parametrize("month", [-1, 12])
    def test_rejects_out_of_range_month(self, month):
        with pytest.raises(ValueError):
            month_bounds(2024, month)


class TestExpenseStoreContract:
    """Behaviour every store must share."""

    def test_first_expense_gets_id_one(self, storage):
        expense = run(storage.create_expense(
            validate_create({"amount": 12.50, "type": "lunch", "remarks": None})
        ))
        assert expense.id == 1
        assert expense.amount == 12.5
        assert expense.type == "lunch"
        assert expense.remarks is None

    def test_ids_are_unique_and_increasing(self, storage, clock):
        ids = [create_at(storage, clock, clock.now).id for _ in range(5)]
        assert ids == [1, 2, 3, 4, 5]

    def test_created_at_is_set_by_the_store(self, storage, clock):
        expense = create_at(storage, clock, utc(2024, 5, 1, 8, 30))
        assert expense.created_at == utc(2024, 5, 1, 8, 30)

    def test_get_by_id_returns_created_record(self, storage, clock):
        created = create_at(storage, clock, utc(2024, 5, 1), amount=7.25, remarks="Coffee")
        fetched = run(storage.get_expense_by_id(created.id))
        assert fetched == created

    def test_get_by_id_missing_returns_none(self, storage):
        assert run(storage.get_expense_by_id(999999)) is None

    def test_get_all_empty(self, storage):
        assert run(storage.get_all_expenses()) == []

    def test_get_all_newest_first(self, storage, clock):
        create_at(storage, clock, utc(2024, 1, 1))
        create_at(storage, clock, utc(2024, 3, 1))
        create_at(storage, clock, utc(2024, 2, 1))

        expenses = run(storage.get_all_expenses())
        assert [e.id for e in expenses] == [2, 3, 1]

    def test_date_range_is_inclusive(self, storage, clock):
        create_at(storage, clock, utc(2024, 1, 10))
        create_at(storage, clock, utc(2024, 1, 20))
        create_at(storage, clock, utc(2024, 1, 30))

        expenses = run(storage.get_expenses_by_date_range(utc(2024, 1, 10), utc(2024, 1, 20)))
        assert [e.id for e in expenses] == [2, 1]

    def test_date_range_accepts_naive_bounds_as_utc(self, storage, clock):
        create_at(storage, clock, utc(2024, 1, 10, 12))
        expenses = run(storage.get_expenses_by_date_range(
            datetime(2024, 1, 10), datetime(2024, 1, 11),
        ))
        assert len(expenses) == 1

    def test_month_boundaries_are_inclusive(self, storage, clock):
        last_instant = create_at(storage, clock, utc(2024, 1, 31, 23, 59, 59, 999000))
        next_month = create_at(storage, clock, utc(2024, 2, 1, 0, 0, 0))
        first_instant = create_at(storage, clock, utc(2024, 1, 1, 0, 0, 0))

        january = run(storage.get_expenses_by_month(2024, 0))
        assert [e.id for e in january] == [last_instant.id, first_instant.id]

        february = run(storage.get_expenses_by_month(2024, 1))
        assert [e.id for e in february] == [next_month.id]

    def test_leap_day_is_in_february(self, storage, clock):
        leap_day = create_at(storage, clock, utc(2024, 2, 29, 23, 0))
        february = run(storage.get_expenses_by_month(2024, 1))
        assert [e.id for e in february] == [leap_day.id]

    def test_non_leap_february_is_just_empty(self, storage, clock):
        create_at(storage, clock, utc(2023, 3, 1))
        assert run(storage.get_expenses_by_month(2023, 1)) == []

    def test_december(self, storage, clock):
        new_years_eve = create_at(storage, clock, utc(2023, 12, 31, 23, 59, 59, 999000))
        create_at(storage, clock, utc(2024, 1, 1))

        december = run(storage.get_expenses_by_month(2023, 11))
        assert [e.id for e in december] == [new_years_eve.id]

    def test_empty_month(self, storage):
        assert run(storage.get_expenses_by_month(2024, 0)) == []


class TestFirestoreExpenseStorage:
    """Firestore-specific behaviour."""

    def test_backend_name(self, firestore_storage):
        assert firestore_storage.backend_name == "firebase"

    def test_document_layout(self, firestore_storage, fake_db, clock):
        create_at(firestore_storage, clock, utc(2024, 4, 2), amount=3, expense_type="transport")

        doc = fake_db.collection("expenses").docs["1"]
        assert doc == {
            "amount": 3.0,
            "type": "transport",
            "remarks": None,
            "createdAt": utc(2024, 4, 2),
        }

    def test_counter_document_tracks_last_id(self, firestore_storage, fake_db, clock):
        create_at(firestore_storage, clock, clock.now)
        create_at(firestore_storage, clock, clock.now)
        assert fake_db.collection("counters").docs["expenses"] == {"value": 2}

    def test_existing_counter_continues(self, firestore_storage, fake_db, clock):
        fake_db.collection("counters").docs["expenses"] = {"value": 41}
        assert create_at(firestore_storage, clock, clock.now).id == 42

    def test_legacy_string_timestamp_is_read(self, firestore_storage, fake_db):
        fake_db.collection("expenses").docs["5"] = {
            "amount": "9.5",
            "type": "dinner",
            "remarks": "",
            "createdAt": "2023-09-21T18:30:00.000Z",
        }
        expense = run(firestore_storage.get_expense_by_id(5))
        assert expense.amount == 9.5
        assert expense.remarks is None
        assert expense.created_at == utc(2023, 9, 21, 18, 30)

    def test_string_timestamp_only_in_full_listing(self, firestore_storage, fake_db):
        fake_db.collection("expenses").docs["5"] = {
            "amount": 9.5,
            "type": "dinner",
            "createdAt": "2024-01-15T12:00:00Z",
        }
        assert [e.id for e in run(firestore_storage.get_all_expenses())] == [5]
        assert run(firestore_storage.get_expenses_by_month(2024, 0)) == []

    def test_corrupt_document_is_skipped_in_listing(self, firestore_storage, fake_db, clock):
        create_at(firestore_storage, clock, utc(2024, 1, 5))
        fake_db.collection("expenses").docs["not-a-number"] = {
            "amount": 5,
            "type": "lunch",
            "createdAt": utc(2024, 1, 6),
        }

        expenses = run(firestore_storage.get_all_expenses())
        assert [e.id for e in expenses] == [1]

        january = run(firestore_storage.get_expenses_by_month(2024, 0))
        assert [e.id for e in january] == [1]

    def test_corrupt_document_fails_single_read(self, firestore_storage, fake_db):
        fake_db.collection("expenses").docs["7"] = {
            "amount": "lots",
            "type": "lunch",
            "createdAt": utc(2024, 1, 6),
        }
        with pytest.raises(CorruptRecord):
            run(firestore_storage.get_expense_by_id(7))

    def test_missing_index_is_reported(self, firestore_storage, fake_db):
        fake_db.collection("expenses").fail_with = google_exceptions.FailedPrecondition(
            "The query requires an index."
        )
        with pytest.raises(QueryUnsupported, match="index"):
            run(firestore_storage.get_expenses_by_month(2024, 0))

    def test_permission_denied(self, firestore_storage, fake_db):
        fake_db.collection("expenses").fail_with = google_exceptions.PermissionDenied(
            "Missing or insufficient permissions."
        )
        with pytest.raises(PermissionError):
            run(firestore_storage.get_all_expenses())

    def test_unavailable_backend(self, firestore_storage, fake_db):
        fake_db.collection("expenses").fail_with = google_exceptions.ServiceUnavailable(
            "Connection reset"
        )
        with pytest.raises(StorageUnavailable):
            run(firestore_storage.get_expense_by_id(1))

    def test_failed_counter_transaction_becomes_unavailable(self, firestore_storage, fake_db, monkeypatch):
        def conflict(transaction, counter_ref):
            raise ValueError("Failed to commit transaction in 5 attempts.")

        monkeypatch.setattr(id_allocator, "_allocate_in_transaction", conflict)

        with pytest.raises(StorageUnavailable):
            run(firestore_storage.create_expense(
                validate_create({"amount": 1, "type": "lunch"})
            ))
        assert fake_db.collection("expenses").docs == {}

    def test_transaction_uses_configured_attempts(self, fake_db):
        settings = FirebaseSettings(_env_file=None, project_id="p", transaction_max_attempts=9)
        client = FirestoreClient(settings, db=fake_db)
        assert client.transaction().max_attempts == 9


class TestInMemoryExpenseStorage:
    """In-memory specific behaviour."""

    def test_backend_name(self, memory_storage):
        assert memory_storage.backend_name == "memory"

    def test_returned_records_are_copies(self, memory_storage, clock):
        created = create_at(memory_storage, clock, clock.now, remarks="original")
        created.remarks = "changed"
        assert run(memory_storage.get_expense_by_id(created.id)).remarks == "original"

    def test_listing_while_another_thread_writes(self, memory_storage, clock):
        for _ in range(500):
            create_at(memory_storage, clock, clock.now)

        errors = []
        stop = threading.Event()

        def writer():
            while not stop.is_set():
                create_at(memory_storage, clock, clock.now)

        thread = threading.Thread(target=writer)
        thread.start()
        try:
            for _ in range(200):
                try:
                    run(memory_storage.get_all_expenses())
                    run(memory_storage.get_expenses_by_month(2024, 2))
                except RuntimeError as e:
                    errors.append(str(e))
        finally:
            stop.set()
            thread.join()

        assert errors == []

    def test_stores_do_not_share_counters(self, clock):
        first = InMemoryExpenseStorage(clock=clock)
        second = InMemoryExpenseStorage(clock=clock)
        create_at(first, clock, clock.now)
        assert create_at(second, clock, clock.now).id == 1


class TestIdAllocators:
    """Tests for id allocation."""

    def test_in_memory_counters_are_per_kind(self):
        allocator = InMemoryIdAllocator()
        assert run(allocator.next_id("expenses")) == 1
        assert run(allocator.next_id("expenses")) == 2
        assert run(allocator.next_id("other")) == 1

    def test_counter_created_when_missing(self, fake_db, fake_transaction):
        ref = fake_db.collection("counters").document("expenses")
        assert id_allocator._increment_counter(fake_transaction, ref) == 1
        assert fake_db.collection("counters").docs["expenses"] == {"value": 1}

    def test_counter_incremented(self, fake_db, fake_transaction):
        fake_db.collection("counters").docs["expenses"] = {"value": 9}
        ref = fake_db.collection("counters").document("expenses")
        assert id_allocator._increment_counter(fake_transaction, ref) == 10


class TestStorageFactory:
    """Tests for backend selection."""

    def test_no_settings_gives_memory(self):
        assert create_expense_storage(None).backend_name == "memory"

    def test_unconfigured_firebase_gives_memory(self):
        settings = FirebaseSettings(_env_file=None, project_id=None)
        assert create_expense_storage(settings).backend_name == "memory"

    def test_project_id_gives_firestore(self):
        settings = FirebaseSettings(_env_file=None, project_id="my-project")
        storage = create_expense_storage(settings)
        assert isinstance(storage, FirestoreExpenseStorage)
        assert storage.backend_name == "firebase"

    def test_timezone_is_passed_through(self):
        tz = ZoneInfo("Asia/Kolkata")
        assert create_expense_storage(None, tz=tz).month_timezone == tz
