"""
Audit Models for Expense Tracker

Significant actions are recorded as structured audit events.
This provides:
1. Traceability of every expense written
2. Debugging information when storage misbehaves
3. A record of rejected requests

DESIGN DECISION: Events are immutable values. Building them is separate
from emitting them (see expense_tracker.audit.logger).
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Lifecycle
    STORAGE_SELECTED = "storage_selected"

    # Persistence
    EXPENSE_CREATED = "expense_created"

    # Reads
    QUERY_EXECUTED = "query_executed"

    # Client errors
    REQUEST_REJECTED = "request_rejected"

    # System events
    STORAGE_ERROR = "storage_error"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'query')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - one id per HTTP request
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate events raised while serving one request"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_created(expense_id, amount, type_code)
        event = AuditEventBuilder.request_rejected("VALIDATION_ERROR", message)
    """

    @staticmethod
    def storage_selected(backend: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_SELECTED,
            entity_type="storage",
            description=f"Using {backend} storage",
            details={"backend": backend},
        )

    @staticmethod
    def expense_created(
        expense_id: int,
        amount: float,
        expense_type: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_CREATED,
            entity_type="expense",
            entity_id=str(expense_id),
            correlation_id=correlation_id,
            description=f"Expense {expense_id} created",
            details={
                "amount": amount,
                "type": expense_type,
            },
        )

    @staticmethod
    def query_executed(
        query_type: str,
        result_count: int,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.QUERY_EXECUTED,
            severity=AuditSeverity.DEBUG,
            entity_type="query",
            correlation_id=correlation_id,
            description=f"Query '{query_type}' returned {result_count} expenses",
            details={
                "query_type": query_type,
                "result_count": result_count,
                **(details or {}),
            },
        )

    @staticmethod
    def request_rejected(
        error_code: str,
        message: str,
        path: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REQUEST_REJECTED,
            entity_type="request",
            correlation_id=correlation_id,
            description=f"Request rejected: {error_code}",
            details={"path": path} if path else {},
            error_code=error_code,
            error_message=message,
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_type: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            entity_type="storage",
            correlation_id=correlation_id,
            description=f"Storage operation failed: {operation}",
            details={"operation": operation},
            error_code=error_type,
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"System error: {error_type}",
            details=details or {},
            error_code=error_type,
            error_message=error_message,
        )
