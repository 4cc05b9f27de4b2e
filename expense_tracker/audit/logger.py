"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Complete traceability
2. Debugging capability
3. A trail of rejected requests and storage failures

The audit logger:
- Writes structured events through structlog
- Maps event severity onto the log level
- Supports correlation IDs to trace events raised by one request
"""

import logging
import sys
from typing import Optional
from uuid import UUID, uuid4

import structlog

from expense_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


def configure_logging(log_level: str = "INFO", json_logs: bool = True) -> None:
    """
    Configure structlog on top of the standard library logging module.

    Call once at process startup (API server or dashboard).
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class AuditLogger:
    """
    Central audit logging service.

    Emits AuditEvents to the structured log at the event's severity.
    """

    def __init__(self, logger_name: str = "expense_tracker.audit"):
        self._logger = structlog.get_logger(logger_name)

    def log(self, event: AuditEvent) -> None:
        """Log an audit event at its severity."""
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

    def log_storage_selected(self, backend: str) -> None:
        """Log which storage backend was chosen at startup."""
        self.log(AuditEventBuilder.storage_selected(backend))

    def log_expense_created(
        self,
        expense_id: int,
        amount: float,
        expense_type: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a newly created expense."""
        event = AuditEventBuilder.expense_created(
            expense_id=expense_id,
            amount=amount,
            expense_type=expense_type,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_query_executed(
        self,
        query_type: str,
        result_count: int,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a read against the store."""
        event = AuditEventBuilder.query_executed(
            query_type=query_type,
            result_count=result_count,
            details=details,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_request_rejected(
        self,
        error_code: str,
        message: str,
        path: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a client error (validation, not found, permission)."""
        event = AuditEventBuilder.request_rejected(
            error_code=error_code,
            message=message,
            path=path,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_storage_error(
        self,
        operation: str,
        error: Exception,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a storage failure."""
        event = AuditEventBuilder.storage_error(
            operation=operation,
            error_type=type(error).__name__,
            error_message=str(error),
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an unexpected error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    The API creates one per request and passes it to every audit call.
    """
    return uuid4()
