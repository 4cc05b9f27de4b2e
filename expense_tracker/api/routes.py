"""
REST API for Expense Tracker

Endpoints
---------
GET  /api/expenses                          all expenses, newest first
GET  /api/expenses/month/<year>/<month>     one month (month is 0-based)
GET  /api/expenses/summary/<year>/<month>   totals per category and per day
GET  /api/expenses/<id>                     one expense
POST /api/expenses                          create: {amount, type, remarks?}
GET  /api/health                            status and active storage backend

DESIGN DECISION: The app is built by create_app() around a store that the
caller passes in. Views reach it through app.extensions, never through a
module-level global, so tests can hand in a fresh store per app.
"""

import re
from datetime import datetime, timezone
from typing import Optional

from flask import Blueprint, Flask, current_app, g, jsonify, request

from expense_tracker.audit import AuditLogger, create_correlation_id
from expense_tracker.models.expense import ValidationError, ValidationIssue, validate_create
from expense_tracker.queries import SummaryService
from expense_tracker.services.storage import ExpenseStorageInterface, NotFoundError
from expense_tracker.api.errors import register_error_handlers


_INTEGER_RE = re.compile(r"^-?\d+$")

api = Blueprint("api", __name__, url_prefix="/api")


def _storage() -> ExpenseStorageInterface:
    return current_app.extensions["expense_storage"]


def _audit() -> AuditLogger:
    return current_app.extensions["audit_logger"]


def _parse_int(value: str) -> Optional[int]:
    """Strict integer parsing for path parameters ("12abc" is not 12)."""
    if not _INTEGER_RE.match(value.strip()):
        return None
    try:
        return int(value)
    except ValueError:
        # Past the interpreter's int string-conversion digit limit
        return None


def _parse_year_month(year: str, month: str) -> tuple[int, int]:
    parsed_year = _parse_int(year)
    parsed_month = _parse_int(month)
    if parsed_year is None or parsed_month is None or not 0 <= parsed_month <= 11:
        raise ValidationError(
            "Invalid year or month",
            [ValidationIssue(field="month", message="Month must be an integer from 0 to 11")],
        )
    if not 1 <= parsed_year <= 9999:
        raise ValidationError(
            "Invalid year or month",
            [ValidationIssue(field="year", message="Year must be an integer from 1 to 9999")],
        )
    return parsed_year, parsed_month


@api.before_app_request
def assign_correlation_id():
    g.correlation_id = create_correlation_id()


@api.get("/expenses")
async def list_expenses():
    """Get all expenses."""
    expenses = await _storage().get_all_expenses()
    _audit().log_query_executed(
        query_type="all",
        result_count=len(expenses),
        correlation_id=g.correlation_id,
    )
    return jsonify([expense.to_api_dict() for expense in expenses])


@api.get("/expenses/month/<year>/<month>")
async def list_expenses_by_month(year: str, month: str):
    """Get expenses for one month."""
    parsed_year, parsed_month = _parse_year_month(year, month)

    expenses = await _storage().get_expenses_by_month(parsed_year, parsed_month)
    _audit().log_query_executed(
        query_type="month",
        result_count=len(expenses),
        details={"year": parsed_year, "month": parsed_month},
        correlation_id=g.correlation_id,
    )
    return jsonify([expense.to_api_dict() for expense in expenses])


@api.get("/expenses/summary/<year>/<month>")
async def month_summary(year: str, month: str):
    """Get category and daily totals for one month."""
    parsed_year, parsed_month = _parse_year_month(year, month)

    summary = await SummaryService(_storage()).monthly_summary(parsed_year, parsed_month)
    _audit().log_query_executed(
        query_type="summary",
        result_count=summary.count,
        details={"year": parsed_year, "month": parsed_month},
        correlation_id=g.correlation_id,
    )
    return jsonify(summary.model_dump(mode="json"))


@api.get("/expenses/<expense_id>")
async def get_expense(expense_id: str):
    """Get a single expense by id."""
    parsed_id = _parse_int(expense_id)
    if parsed_id is None:
        raise ValidationError(
            "Invalid expense ID",
            [ValidationIssue(field="id", message="Expense ID must be an integer")],
        )

    expense = await _storage().get_expense_by_id(parsed_id)
    if expense is None:
        raise NotFoundError("Expense not found")

    return jsonify(expense.to_api_dict())


@api.post("/expenses")
async def create_expense():
    """Create a new expense."""
    payload = validate_create(request.get_json(silent=True))

    expense = await _storage().create_expense(payload)
    _audit().log_expense_created(
        expense_id=expense.id,
        amount=expense.amount,
        expense_type=expense.type,
        correlation_id=g.correlation_id,
    )
    return jsonify(expense.to_api_dict()), 201


@api.get("/health")
def health():
    """Report liveness and which storage backend is active."""
    return jsonify({
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "storage": _storage().backend_name,
    })


def create_app(
    storage: ExpenseStorageInterface,
    audit_logger: Optional[AuditLogger] = None,
) -> Flask:
    """
    Build the Flask application around a store.

    Args:
        storage: The expense store every request will use
        audit_logger: Audit logger (a default one is created if omitted)
    """
    app = Flask(__name__)
    app.json.sort_keys = False

    app.extensions["expense_storage"] = storage
    app.extensions["audit_logger"] = audit_logger or AuditLogger()

    app.register_blueprint(api)
    register_error_handlers(app)

    return app
