"""
Audit Logger

DESIGN DECISION: Every change to expenses, budget or income is logged,
including the ones the backend refused. This provides:
1. Complete traceability
2. Debugging capability when a remote write fails
3. A visible trail for records skipped during load or import

The audit logger:
- Is async so it can sit in the same await chain as store operations
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace all events of one session
"""

import logging
import sys
from typing import Optional
from uuid import UUID, uuid4

import structlog

from expense_tracker.models.audit import AuditEvent, AuditEventBuilder


# Configure structlog for local logging
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
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output to stderr at the given level."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
    )


class AuditLogger:
    """
    Central audit logging service.

    Every event goes to the structured local log. An optional sink
    (any callable taking an AuditEvent) also receives it, e.g. to
    show a history panel or collect events in tests.
    """

    def __init__(self, sink=None):
        """
        Initialize audit logger.

        Args:
            sink: Extra receiver for events. If None, only logs locally.
        """
        self._sink = sink
        self._logger = structlog.get_logger("expense_tracker.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Hands the event to the sink if configured.

        Returns True if the sink accepted it (or no sink configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._sink is not None:
            try:
                self._sink(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_sink_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_session_started(
        self,
        storage_kind: str,
        user_id: Optional[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.session_started(
            storage_kind=storage_kind,
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_session_ended(
        self,
        user_id: Optional[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.session_ended(
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_expenses_loaded(self, record_count: int, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.expenses_loaded(
            record_count=record_count,
            correlation_id=correlation_id,
        ))

    async def log_load_failed(self, error_message: str, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.load_failed(
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_expense_added(
        self,
        expense_id: str,
        name: str,
        amount: float,
        correlation_id: UUID,
    ) -> None:
        """Log a confirmed add."""
        await self.log(AuditEventBuilder.expense_added(
            expense_id=expense_id,
            name=name,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_expense_updated(
        self,
        expense_id: str,
        changed_fields: list[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.expense_updated(
            expense_id=expense_id,
            changed_fields=changed_fields,
            correlation_id=correlation_id,
        ))

    async def log_expense_deleted(self, expense_id: str, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.expense_deleted(
            expense_id=expense_id,
            correlation_id=correlation_id,
        ))

    async def log_not_found(
        self,
        operation: str,
        expense_id: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.expense_not_found(
            operation=operation,
            expense_id=expense_id,
            correlation_id=correlation_id,
        ))

    async def log_save_failed(
        self,
        operation: str,
        entity_id: Optional[str],
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a write the backend refused."""
        await self.log(AuditEventBuilder.save_failed(
            operation=operation,
            entity_id=entity_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_validation_failed(
        self,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.validation_failed(
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_scalar_set(self, scalar: str, amount: float, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.scalar_set(
            scalar=scalar,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_data_exported(
        self,
        record_count: int,
        export_format: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.data_exported(
            record_count=record_count,
            export_format=export_format,
            correlation_id=correlation_id,
        ))

    async def log_data_imported(
        self,
        imported: int,
        skipped: int,
        failed: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.data_imported(
            imported=imported,
            skipped=skipped,
            failed=failed,
            correlation_id=correlation_id,
        ))

    async def log_import_failed(self, error_message: str, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.import_failed(
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a session (login, or app start without login).
    Pass it through all subsequent operations.
    """
    return uuid4()
