"""
Core Data Models for Expense Tracker

These models define the strict schemas for expense data:
1. InsertExpense - what a client may send when creating an expense
2. Expense - a persisted record, as returned by every store

DESIGN DECISION: Validation of client input happens here and only here,
before any storage call. Stored records are NOT re-validated against the
category list: old documents with unknown codes must stay readable.
"""

import math
from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError as PydanticValidationError,
    field_validator,
)


# =============================================================================
# CATEGORIES
# =============================================================================

class ExpenseCategory(str, Enum):
    """
    Supported expense categories.

    The order here is the order shown in pickers and legends.
    """
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    ENTERTAINMENT = "entertainment"
    TRANSPORT = "transport"
    MEDICAL = "medical"
    PERSONAL_CARE = "personal_care"
    SHOPPING = "shopping"
    FITNESS = "fitness"
    HOBBY = "hobby"
    TRAVEL = "travel"
    GIFTS = "gifts"
    REPAIRS = "repairs"
    EMERGENCY = "emergency"
    OTHERS = "others"


EXPENSE_TYPES: tuple[str, ...] = tuple(category.value for category in ExpenseCategory)

# Presentation only - never used for validation
EXPENSE_TYPE_LABELS: dict[str, str] = {
    "breakfast": "Breakfast",
    "lunch": "Lunch",
    "dinner": "Dinner",
    "entertainment": "Entertainment",
    "transport": "Transport",
    "medical": "Medical",
    "personal_care": "Personal Care",
    "shopping": "Shopping",
    "fitness": "Fitness/Wellness",
    "hobby": "Hobby",
    "travel": "Travel",
    "gifts": "Gifts",
    "repairs": "Repairs/Maintenance",
    "emergency": "Emergency",
    "others": "Others",
}


def get_expense_type_label(code: Any) -> str:
    """Human-readable label for a category code, or the raw code if unknown."""
    code = str(code)
    return EXPENSE_TYPE_LABELS.get(code, code)


# =============================================================================
# VALIDATION ERRORS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single problem found in client input."""

    field: str = Field(..., description="Field the issue is about")
    message: str = Field(..., description="Human-readable explanation")


class ValidationError(ValueError):
    """
    Client input is malformed or out of range.

    Raised before any I/O. Maps to HTTP 400 / VALIDATION_ERROR.
    """

    def __init__(self, message: str, issues: Optional[list[ValidationIssue]] = None):
        super().__init__(message)
        self.message = message
        self.issues = issues or []

    @classmethod
    def from_issues(cls, issues: list[ValidationIssue]) -> "ValidationError":
        details = "; ".join(f'{issue.message} at "{issue.field}"' for issue in issues)
        return cls(f"Validation error: {details}", issues)

    @classmethod
    def from_pydantic(cls, error: PydanticValidationError) -> "ValidationError":
        issues = []
        for err in error.errors():
            field = ".".join(str(part) for part in err["loc"]) or "body"
            if err["type"] == "missing":
                message = f"{field.capitalize()} is required"
            elif err["type"] == "value_error":
                message = str(err["ctx"]["error"])
            else:
                message = err["msg"]
            issues.append(ValidationIssue(field=field, message=message))
        return cls.from_issues(issues)


# =============================================================================
# EXPENSE MODELS
# =============================================================================

class InsertExpense(BaseModel):
    """
    Normalized creation payload.

    Exactly {amount, type, remarks}: anything else a client sends is dropped,
    and id/createdAt are always filled in by the server.
    """
    model_config = ConfigDict(
        extra="ignore",
        use_enum_values=True,
    )

    amount: float = Field(
        ...,
        description="Amount spent, strictly positive"
    )
    type: ExpenseCategory = Field(
        ...,
        description="Category code"
    )
    remarks: Optional[str] = Field(
        default=None,
        description="Free-text note"
    )

    @field_validator('amount', mode='before')
    @classmethod
    def validate_amount(cls, v: Any) -> float:
        """Accept numbers and numeric strings; reject everything <= 0."""
        if isinstance(v, bool) or v is None:
            raise ValueError("Amount must be a number")
        if isinstance(v, str):
            try:
                v = float(v.strip())
            except ValueError:
                raise ValueError("Amount must be a number")
        if not isinstance(v, (int, float, Decimal)):
            raise ValueError("Amount must be a number")

        try:
            amount = float(v)
        except OverflowError:
            raise ValueError("Amount must be a number")
        if not math.isfinite(amount):
            raise ValueError("Amount must be a number")
        if amount <= 0:
            raise ValueError("Amount must be greater than 0")
        return amount

    @field_validator('remarks', mode='before')
    @classmethod
    def empty_remarks_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class Expense(BaseModel):
    """
    A persisted expense record.

    `type` is a plain string here: records written before a category was
    retired still load, and display falls back to the raw code.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(
        ...,
        gt=0,
        description="Sequential identifier, never reused"
    )
    amount: float = Field(
        ...,
        description="Amount spent"
    )
    type: str = Field(
        ...,
        description="Category code"
    )
    remarks: Optional[str] = Field(
        default=None,
        description="Free-text note, None when empty"
    )
    created_at: datetime = Field(
        ...,
        alias="createdAt",
        description="When the expense was recorded (server time)"
    )

    @property
    def type_label(self) -> str:
        return get_expense_type_label(self.type)

    def to_api_dict(self) -> dict:
        """JSON-ready dict using the wire field names (createdAt)."""
        return self.model_dump(mode="json", by_alias=True)


def validate_create(payload: Any) -> InsertExpense:
    """
    Validate a creation payload from a client.

    Args:
        payload: Anything - usually the decoded JSON request body

    Returns:
        The normalized payload

    Raises:
        ValidationError: If the payload is not an object, the amount is
            missing, non-numeric or not greater than 0, or the type is not
            a known category code
    """
    if not isinstance(payload, Mapping):
        raise ValidationError.from_issues([
            ValidationIssue(
                field="body",
                message="Expected an object with amount and type",
            ),
        ])

    try:
        return InsertExpense.model_validate(dict(payload))
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e) from e
