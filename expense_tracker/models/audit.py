"""
Audit Models for Expense Tracker

Every change to the user's expenses, budget or income is recorded as an
audit event. This provides:
1. Traceability of every mutation, including the ones the backend refused
2. Debugging information when a store operation fails
3. A record of skipped/malformed data instead of silent drops

DESIGN DECISION: Audit events are append-only. We never modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Session lifecycle
    SESSION_STARTED = "session_started"
    SESSION_ENDED = "session_ended"
    EXPENSES_LOADED = "expenses_loaded"
    LOAD_FAILED = "load_failed"

    # Expense mutations
    EXPENSE_ADDED = "expense_added"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"
    EXPENSE_NOT_FOUND = "expense_not_found"
    SAVE_FAILED = "save_failed"
    VALIDATION_FAILED = "validation_failed"

    # Scalars
    BUDGET_SET = "budget_set"
    INCOME_SET = "income_set"

    # Export / import
    DATA_EXPORTED = "data_exported"
    DATA_IMPORTED = "data_imported"
    IMPORT_FAILED = "import_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
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
        description="Type of entity (e.g., 'expense', 'budget', 'session')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - all events of one session share this
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one login session)"
    )

    # Event details
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
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

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
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_added(expense_id, name, amount, correlation_id)
        event = AuditEventBuilder.save_failed("delete", expense_id, error, correlation_id)
    """

    @staticmethod
    def session_started(
        storage_kind: str,
        user_id: Optional[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_STARTED,
            entity_type="session",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=f"Session started with {storage_kind} storage",
            details={"storage": storage_kind},
            is_user_action=True,
        )

    @staticmethod
    def session_ended(
        user_id: Optional[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_ENDED,
            entity_type="session",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="Session ended, in-memory expenses cleared",
            is_user_action=True,
        )

    @staticmethod
    def expenses_loaded(
        record_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSES_LOADED,
            entity_type="expense",
            correlation_id=correlation_id,
            description=f"Loaded {record_count} expenses",
            details={"record_count": record_count},
        )

    @staticmethod
    def load_failed(
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOAD_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="expense",
            correlation_id=correlation_id,
            description="Could not load expenses from storage",
            error_message=error_message,
        )

    @staticmethod
    def expense_added(
        expense_id: str,
        name: str,
        amount: float,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_ADDED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense added: {name} - {amount:.2f}",
            details={
                "name": name,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_updated(
        expense_id: str,
        changed_fields: list[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_UPDATED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense updated ({len(changed_fields)} fields)",
            details={"changed_fields": changed_fields},
            is_user_action=True,
        )

    @staticmethod
    def expense_deleted(
        expense_id: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description="Expense deleted",
            is_user_action=True,
        )

    @staticmethod
    def expense_not_found(
        operation: str,
        expense_id: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_NOT_FOUND,
            severity=AuditSeverity.WARNING,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Cannot {operation}: expense not found",
            details={"operation": operation},
        )

    @staticmethod
    def save_failed(
        operation: str,
        entity_id: Optional[str],
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="expense",
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Storage rejected {operation}",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def validation_failed(
        issues: list[dict],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="expense",
            correlation_id=correlation_id,
            description=f"Validation failed with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def scalar_set(
        scalar: str,
        amount: float,
        correlation_id: UUID,
    ) -> AuditEvent:
        event_type = (
            AuditEventType.BUDGET_SET
            if scalar == "budget"
            else AuditEventType.INCOME_SET
        )
        return AuditEvent(
            event_type=event_type,
            entity_type=scalar,
            correlation_id=correlation_id,
            description=f"Monthly {scalar} set to {amount:.2f}",
            details={"amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def data_exported(
        record_count: int,
        export_format: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_EXPORTED,
            entity_type="expense",
            correlation_id=correlation_id,
            description=f"Exported {record_count} expenses as {export_format}",
            details={
                "record_count": record_count,
                "format": export_format,
            },
            is_user_action=True,
        )

    @staticmethod
    def data_imported(
        imported: int,
        skipped: int,
        failed: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        severity = AuditSeverity.WARNING if (skipped or failed) else AuditSeverity.INFO
        return AuditEvent(
            event_type=AuditEventType.DATA_IMPORTED,
            severity=severity,
            entity_type="expense",
            correlation_id=correlation_id,
            description=f"Imported {imported} expenses ({skipped} skipped, {failed} failed)",
            details={
                "imported": imported,
                "skipped": skipped,
                "failed": failed,
            },
            is_user_action=True,
        )

    @staticmethod
    def import_failed(
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="expense",
            correlation_id=correlation_id,
            description="Import file rejected",
            error_message=error_message,
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
