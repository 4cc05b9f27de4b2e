"""
API Error Mapping

Every failure leaves the API as one JSON shape:

    {"message": "...", "type": "VALIDATION_ERROR"}

DESIGN DECISION: Handlers are registered on the app, so views just raise.
Storage-specific exceptions never reach the client: only our own
StorageError hierarchy is mapped, and anything unexpected becomes a
generic SERVER_ERROR.
"""

from flask import Flask, current_app, g, jsonify, request
from werkzeug.exceptions import HTTPException

from expense_tracker.audit import AuditLogger
from expense_tracker.models.expense import ValidationError
from expense_tracker.services.storage import (
    NotFoundError,
    PermissionError,
    QueryUnsupported,
    StorageError,
)


VALIDATION_ERROR = "VALIDATION_ERROR"
NOT_FOUND_ERROR = "NOT_FOUND_ERROR"
PERMISSION_ERROR = "PERMISSION_ERROR"
QUERY_UNSUPPORTED_ERROR = "QUERY_UNSUPPORTED_ERROR"
METHOD_NOT_ALLOWED_ERROR = "METHOD_NOT_ALLOWED_ERROR"
SERVER_ERROR = "SERVER_ERROR"

# Checked in order: subclasses before StorageError itself
STORAGE_ERROR_RESPONSES: list[tuple[type, int, str]] = [
    (NotFoundError, 404, NOT_FOUND_ERROR),
    (PermissionError, 403, PERMISSION_ERROR),
    (QueryUnsupported, 500, QUERY_UNSUPPORTED_ERROR),
    (StorageError, 500, SERVER_ERROR),
]

HTTP_ERROR_TYPES = {
    400: VALIDATION_ERROR,
    403: PERMISSION_ERROR,
    404: NOT_FOUND_ERROR,
    405: METHOD_NOT_ALLOWED_ERROR,
}


def error_response(message: str, error_type: str, status: int):
    """Build the standard error body."""
    return jsonify({"message": message, "type": error_type}), status


def _audit() -> AuditLogger:
    return current_app.extensions["audit_logger"]


def _correlation_id():
    return g.get("correlation_id")


def register_error_handlers(app: Flask) -> None:
    """Attach the exception -> response mapping to an app."""

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        _audit().log_request_rejected(
            error_code=VALIDATION_ERROR,
            message=error.message,
            path=request.path,
            correlation_id=_correlation_id(),
        )
        return error_response(error.message, VALIDATION_ERROR, 400)

    @app.errorhandler(StorageError)
    def handle_storage_error(error: StorageError):
        for error_class, status, error_type in STORAGE_ERROR_RESPONSES:
            if isinstance(error, error_class):
                break

        if status < 500:
            _audit().log_request_rejected(
                error_code=error_type,
                message=str(error),
                path=request.path,
                correlation_id=_correlation_id(),
            )
        else:
            _audit().log_storage_error(
                operation=f"{request.method} {request.path}",
                error=error,
                correlation_id=_correlation_id(),
            )
        return error_response(str(error) or "Storage error", error_type, status)

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        status = error.code or 500
        return error_response(
            error.description or error.name,
            HTTP_ERROR_TYPES.get(status, SERVER_ERROR),
            status,
        )

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        _audit().log_error(
            error_type=type(error).__name__,
            error_message=str(error),
            details={"method": request.method, "path": request.path},
            correlation_id=_correlation_id(),
        )
        current_app.logger.exception("Unhandled error while serving %s", request.path)
        return error_response("Internal server error", SERVER_ERROR, 500)
