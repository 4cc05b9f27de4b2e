"""
Firestore Storage Implementation

DESIGN DECISION: Firestore is the durable backend because:
1. No database server to run for a personal app
2. Transactions give us safe sequential ids
3. Range queries on createdAt cover the month views

LAYOUT:
- expenses/<id>   -> {amount, type, remarks, createdAt}
- counters/<kind> -> {value: last issued id}

TRADEOFFS:
- Range queries on createdAt may need an index; a missing index is
  reported as QueryUnsupported, never as an empty result
- The client library is synchronous; calls are made inline from the
  async methods, one request at a time
- Firestore range filters only match values of the bound's type. Legacy
  documents whose createdAt is an ISO string are listed by
  get_all_expenses but never match a month or date-range query

Google API exceptions never leave this module: they are translated
into the StorageError hierarchy.
"""

from contextlib import contextmanager
from datetime import datetime, timezone, tzinfo
from typing import Callable, Iterator, Optional

import structlog
from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from google.oauth2.service_account import Credentials
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from expense_tracker.config import FirebaseSettings
from expense_tracker.models.expense import Expense, InsertExpense
from expense_tracker.services.storage.codec import decode_expense, encode_expense
from expense_tracker.services.storage.interface import (
    CorruptRecord,
    ExpenseStorageInterface,
    IdAllocatorInterface,
    PermissionError,
    QueryUnsupported,
    StorageError,
    StorageUnavailable,
    ensure_aware,
)


logger = structlog.get_logger(__name__)

EXPENSES_KIND = "expenses"
CREATED_AT_FIELD = "createdAt"


@contextmanager
def translate_errors(operation: str) -> Iterator[None]:
    """Re-raise Google client errors as StorageError subclasses."""
    try:
        yield
    except StorageError:
        raise
    except google_exceptions.FailedPrecondition as e:
        logger.error(
            "firestore_index_required",
            operation=operation,
            error=str(e),
        )
        raise QueryUnsupported(
            f"Failed to {operation}: this query needs a Firestore index that has "
            f"not been created yet. Create it from the Firebase console and retry. ({e})"
        ) from e
    except google_exceptions.PermissionDenied as e:
        raise PermissionError(f"Failed to {operation}: permission denied ({e})") from e
    except (google_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as e:
        raise StorageUnavailable(f"Failed to {operation}: {e}") from e


class FirestoreClient:
    """
    Low-level Firestore client wrapper.

    Handles authentication and provides retry logic for connecting.
    """

    def __init__(
        self,
        settings: FirebaseSettings,
        db: Optional[firestore.Client] = None,
    ):
        self._settings = settings
        self._db = db

    @property
    def settings(self) -> FirebaseSettings:
        return self._settings

    def _load_credentials(self) -> Optional[Credentials]:
        """Inline JSON wins over a file; neither means application default credentials."""
        info = self._settings.service_account_info
        if info:
            return Credentials.from_service_account_info(info)
        if self._settings.credentials_path:
            return Credentials.from_service_account_file(self._settings.credentials_path)
        return None

    @retry(
        retry=retry_if_exception_type(StorageUnavailable),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> firestore.Client:
        """
        Establish the Firestore client.

        Uses service account credentials when configured.
        """
        if self._db is None:
            try:
                self._db = firestore.Client(
                    project=self._settings.project_id,
                    credentials=self._load_credentials(),
                )
            except FileNotFoundError:
                raise StorageUnavailable(
                    f"Firebase credentials file not found: {self._settings.credentials_path}"
                )
            except (ValueError, google_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as e:
                raise StorageUnavailable(f"Failed to connect to Firestore: {e}")

            logger.info("firestore_connected", project_id=self._settings.project_id)

        return self._db

    def expenses(self):
        """Get the expenses collection."""
        return self.connect().collection(self._settings.expenses_collection)

    def counters(self):
        """Get the counters collection."""
        return self.connect().collection(self._settings.counters_collection)

    def transaction(self):
        """Start a transaction that Firestore retries on write conflicts."""
        return self.connect().transaction(
            max_attempts=self._settings.transaction_max_attempts,
        )


class FirestoreExpenseStorage(ExpenseStorageInterface):
    """
    Firestore implementation of expense storage.

    One document per expense, keyed by its integer id.
    """

    def __init__(
        self,
        client: FirestoreClient,
        allocator: IdAllocatorInterface,
        tz: tzinfo = timezone.utc,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(tz, clock)
        self._client = client
        self._allocator = allocator

    @property
    def backend_name(self) -> str:
        return "firebase"

    def _decode_all(self, snapshots) -> list[Expense]:
        """Decode documents, skipping (and logging) the ones that cannot be read."""
        expenses = []
        for snapshot in snapshots:
            try:
                expenses.append(decode_expense(snapshot.id, snapshot.to_dict()))
            except CorruptRecord as e:
                logger.warning(
                    "expense_document_skipped",
                    doc_id=snapshot.id,
                    error=str(e),
                )
        return expenses

    async def create_expense(self, payload: InsertExpense) -> Expense:
        """Allocate an id, then write the expense document under it."""
        expense_id = await self._allocator.next_id(EXPENSES_KIND)

        expense = Expense(
            id=expense_id,
            amount=payload.amount,
            type=payload.type,
            remarks=payload.remarks or None,
            created_at=self._now(),
        )

        with translate_errors("create expense"):
            self._client.expenses().document(str(expense_id)).set(encode_expense(expense))

        logger.info("expense_created", expense_id=expense_id, backend=self.backend_name)
        return expense

    async def get_all_expenses(self) -> list[Expense]:
        """List all expenses, newest first."""
        with translate_errors("get expenses"):
            query = self._client.expenses().order_by(
                CREATED_AT_FIELD,
                direction=firestore.Query.DESCENDING,
            )
            snapshots = list(query.stream())

        return self._decode_all(snapshots)

    async def get_expense_by_id(self, expense_id: int) -> Optional[Expense]:
        """Retrieve an expense by its ID."""
        with translate_errors("get expense"):
            snapshot = self._client.expenses().document(str(expense_id)).get()

        if not snapshot.exists:
            return None
        return decode_expense(snapshot.id, snapshot.to_dict())

    async def get_expenses_by_date_range(
        self,
        start: datetime,
        end: datetime,
    ) -> list[Expense]:
        """List expenses recorded between start and end (inclusive), newest first."""
        start, end = ensure_aware(start), ensure_aware(end)

        with translate_errors("get expenses by date range"):
            query = (
                self._client.expenses()
                .where(filter=FieldFilter(CREATED_AT_FIELD, ">=", start))
                .where(filter=FieldFilter(CREATED_AT_FIELD, "<=", end))
                .order_by(CREATED_AT_FIELD, direction=firestore.Query.DESCENDING)
            )
            snapshots = list(query.stream())

        logger.debug(
            "expenses_by_date_range",
            start=start.isoformat(),
            end=end.isoformat(),
            count=len(snapshots),
        )
        return self._decode_all(snapshots)
