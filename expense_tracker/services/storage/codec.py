"""
Expense Document Codec

Converts between stored documents and Expense records.

DESIGN DECISION: createdAt has been stored in more than one shape over
time (ISO strings from early versions, native Firestore timestamps later).
This module is the single place that absorbs that variance: everything
above it sees a timezone-aware datetime.

TRADEOFFS:
- An unreadable createdAt falls back to "now" with a warning instead of
  failing the read, so one bad document cannot hide a whole month.
- An unreadable id or amount does fail, with CorruptRecord.
"""

from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import structlog

from expense_tracker.models.expense import Expense
from expense_tracker.services.storage.interface import CorruptRecord, ensure_aware


logger = structlog.get_logger(__name__)

# Methods that convert a timestamp-like object to a datetime, in lookup order
CONVERTER_METHODS = ("to_datetime", "ToDatetime", "toDate")


class TimestampEncoding(str, Enum):
    """Every shape a stored createdAt is known to take."""
    NATIVE = "native"            # datetime (incl. Firestore DatetimeWithNanoseconds)
    ISO_STRING = "iso_string"    # "2024-02-29T23:00:00.000Z"
    CONVERTIBLE = "convertible"  # protobuf/Firestore Timestamp-like objects
    UNKNOWN = "unknown"


def classify_timestamp(value: Any) -> TimestampEncoding:
    """Decide which encoding a stored createdAt value uses."""
    if isinstance(value, datetime):
        return TimestampEncoding.NATIVE
    if isinstance(value, str):
        return TimestampEncoding.ISO_STRING
    if any(callable(getattr(value, name, None)) for name in CONVERTER_METHODS):
        return TimestampEncoding.CONVERTIBLE
    return TimestampEncoding.UNKNOWN


def _parse_iso(value: str) -> datetime:
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _convert(value: Any) -> datetime:
    for name in CONVERTER_METHODS:
        method = getattr(value, name, None)
        if callable(method):
            converted = method()
            if not isinstance(converted, datetime):
                raise TypeError(f"{name}() returned {type(converted).__name__}")
            return converted
    raise TypeError(f"{type(value).__name__} has no timestamp converter")


def resolve_timestamp(value: Any, doc_id: str = "") -> datetime:
    """
    Turn a stored createdAt into an aware datetime.

    Never raises: unknown or unparseable values become the current time
    and a warning is logged.
    """
    encoding = classify_timestamp(value)

    try:
        if encoding == TimestampEncoding.NATIVE:
            return ensure_aware(value)
        elif encoding == TimestampEncoding.ISO_STRING:
            return ensure_aware(_parse_iso(value))
        elif encoding == TimestampEncoding.CONVERTIBLE:
            return ensure_aware(_convert(value))
    except (ValueError, TypeError, OverflowError) as e:
        logger.warning(
            "invalid_created_at",
            doc_id=doc_id,
            encoding=encoding.value,
            error=str(e),
        )
        return datetime.now(timezone.utc)

    logger.warning(
        "invalid_created_at",
        doc_id=doc_id,
        encoding=encoding.value,
        value_type=type(value).__name__,
    )
    return datetime.now(timezone.utc)


def decode_expense(doc_id: Any, data: Any) -> Expense:
    """
    Build an Expense from a document id and its fields.

    Args:
        doc_id: Document key (the expense id as a string)
        data: Document fields

    Raises:
        CorruptRecord: If the id or amount cannot be read
    """
    try:
        expense_id = int(str(doc_id).strip())
    except ValueError:
        raise CorruptRecord(f"Expense document id is not an integer: {doc_id!r}", str(doc_id))
    if expense_id <= 0:
        raise CorruptRecord(f"Expense document id must be positive: {doc_id!r}", str(doc_id))

    if not isinstance(data, Mapping):
        raise CorruptRecord(f"Expense document {doc_id} has no data", str(doc_id))

    raw_amount = data.get("amount")
    if isinstance(raw_amount, bool):
        raise CorruptRecord(f"Expense document {doc_id} has a non-numeric amount", str(doc_id))
    try:
        amount = float(raw_amount)
    except (TypeError, ValueError):
        raise CorruptRecord(f"Expense document {doc_id} has a non-numeric amount", str(doc_id))

    remarks = data.get("remarks")
    if remarks is not None and not isinstance(remarks, str):
        remarks = str(remarks)

    return Expense(
        id=expense_id,
        amount=amount,
        type=str(data.get("type", "")),
        remarks=remarks or None,
        created_at=resolve_timestamp(data.get("createdAt"), str(doc_id)),
    )


def encode_expense(expense: Expense) -> dict:
    """Document fields for an expense. The id is the document key, not a field."""
    return {
        "amount": expense.amount,
        "type": expense.type,
        "remarks": expense.remarks or None,
        "createdAt": expense.created_at,
    }
