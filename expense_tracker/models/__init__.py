"""
Data Models Package

This package contains all Pydantic models used in the Expense Tracker.
All data flowing through the system must conform to these schemas.
"""

from expense_tracker.models.expense import (
    CATEGORY_STYLES,
    RECURRENCE_ORDER,
    DueDateParseError,
    ErrorType,
    ExpenseCategory,
    ExpenseInput,
    ExpenseRecord,
    OperationResult,
    Recurrence,
    StoreSnapshot,
    UserContext,
    ValidationIssue,
    ValidationResult,
    get_category_style,
)
from expense_tracker.models.filters import (
    FilterKind,
    FilterState,
    PredefinedRange,
    SortKey,
    predefined_date_range,
)
from expense_tracker.models.summary import (
    BudgetStatus,
    BudgetSummary,
    CategoryBreakdown,
    Period,
    Totals,
    round_half_up,
)
from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Expense models
    "CATEGORY_STYLES",
    "RECURRENCE_ORDER",
    "DueDateParseError",
    "ErrorType",
    "ExpenseCategory",
    "ExpenseInput",
    "ExpenseRecord",
    "OperationResult",
    "Recurrence",
    "StoreSnapshot",
    "UserContext",
    "ValidationIssue",
    "ValidationResult",
    "get_category_style",
    # Filter models
    "FilterKind",
    "FilterState",
    "PredefinedRange",
    "SortKey",
    "predefined_date_range",
    # Summary models
    "BudgetStatus",
    "BudgetSummary",
    "CategoryBreakdown",
    "Period",
    "Totals",
    "round_half_up",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
