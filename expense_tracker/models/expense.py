"""
Core Data Models for Expense Tracker

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for local and remote storage
4. Accept both the snake_case field names and the camelCase keys
   used by exported/legacy documents

DESIGN DECISION: The due date is kept as the text the record was stored
with. Imported or hand-edited documents may carry an unparseable date,
and such a record must still load; it is only excluded from date-based
queries (see parse_due_date).
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class ExpenseCategory(str, Enum):
    """
    Supported expense categories.

    DESIGN DECISION: Using explicit categories rather than free text ensures
    consistent grouping in the category breakdown.
    """
    HOUSING = "Housing"
    UTILITIES = "Utilities"
    TRANSPORTATION = "Transportation"
    FOOD = "Food"
    ENTERTAINMENT = "Entertainment"
    HEALTH = "Health"
    PERSONAL = "Personal"
    SUBSCRIPTIONS = "Subscriptions"
    EDUCATION = "Education"
    OTHER = "Other"


class Recurrence(str, Enum):
    """
    How often an expense repeats.

    Determines how the amount contributes to monthly and yearly totals.
    """
    MONTHLY = "Monthly"
    YEARLY = "Yearly"
    ONE_TIME = "One-time"


# Ordinal used by the recurrence sort - NOT alphabetical
RECURRENCE_ORDER = {
    Recurrence.MONTHLY: 0,
    Recurrence.YEARLY: 1,
    Recurrence.ONE_TIME: 2,
}


class ErrorType(str, Enum):
    """Why a store or session operation did not go through."""
    VALIDATION = "validation"
    STORAGE = "storage"
    NOT_FOUND = "not_found"


# Icon and colour per category, for presentation consumers
CATEGORY_STYLES = {
    ExpenseCategory.HOUSING: {"icon": "fa-home", "color": "#4f46e5"},
    ExpenseCategory.UTILITIES: {"icon": "fa-bolt", "color": "#06b6d4"},
    ExpenseCategory.TRANSPORTATION: {"icon": "fa-car", "color": "#f59e0b"},
    ExpenseCategory.FOOD: {"icon": "fa-utensils", "color": "#10b981"},
    ExpenseCategory.ENTERTAINMENT: {"icon": "fa-film", "color": "#8b5cf6"},
    ExpenseCategory.HEALTH: {"icon": "fa-heartbeat", "color": "#ec4899"},
    ExpenseCategory.PERSONAL: {"icon": "fa-user", "color": "#3b82f6"},
    ExpenseCategory.SUBSCRIPTIONS: {"icon": "fa-credit-card", "color": "#6366f1"},
    ExpenseCategory.EDUCATION: {"icon": "fa-graduation-cap", "color": "#9c27b0"},
    ExpenseCategory.OTHER: {"icon": "fa-ellipsis-h", "color": "#6b7280"},
}

DEFAULT_CATEGORY_STYLE = {"icon": "fa-ellipsis-h", "color": "#6b7280"}


def get_category_style(category: Any) -> dict[str, str]:
    """Icon and colour for a category, falling back to the 'Other' look."""
    try:
        return dict(CATEGORY_STYLES[ExpenseCategory(category)])
    except ValueError:
        return dict(DEFAULT_CATEGORY_STYLE)


class DueDateParseError(ValueError):
    """A record carries a due date that cannot be read as a calendar date."""

    def __init__(self, expense_id: str, raw_value: str):
        self.expense_id = expense_id
        self.raw_value = raw_value
        super().__init__(
            f"Expense {expense_id} has an unparseable due date: {raw_value!r}"
        )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# CORE EXPENSE MODEL
# =============================================================================

class ExpenseRecord(BaseModel):
    """
    A single expense owned by the Record Store.

    CRITICAL: The Query Engine only ever reads these.
    Edits go through RecordStore.update, which builds a new validated
    record and swaps it in once the backend has confirmed the write.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
    )

    # Identity
    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Opaque unique identifier"
    )

    name: str = Field(
        ...,
        min_length=1,
        description="Label shown to the user"
    )
    category: ExpenseCategory = Field(
        ...,
        description="Expense category"
    )
    recurrence: Recurrence = Field(
        ...,
        description="Repeat cadence"
    )
    amount: float = Field(
        ...,
        gt=0,
        allow_inf_nan=False,
        description="Monetary amount, currency-agnostic"
    )
    due_date: Optional[str] = Field(
        default=None,
        alias="dueDate",
        description="Due date as ISO-8601 text (YYYY-MM-DD)"
    )
    notes: str = Field(
        default="",
        description="Free text notes"
    )
    created_at: datetime = Field(
        default_factory=_utcnow,
        alias="createdAt",
        description="Creation timestamp (informational only)"
    )

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        """Legacy local records used numeric timestamps as ids."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator('due_date', mode='before')
    @classmethod
    def normalise_due_date(cls, v: Any) -> Any:
        """Store dates as ISO text; treat blank text as no date."""
        if isinstance(v, datetime):
            return v.date().isoformat()
        if isinstance(v, date):
            return v.isoformat()
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator('notes', mode='before')
    @classmethod
    def none_notes_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    def parse_due_date(self) -> Optional[date]:
        """
        Read the due date as a calendar date.

        Accepts plain dates and full ISO timestamps (only the date part
        is used).

        Returns:
            The date, or None when the record has no due date

        Raises:
            DueDateParseError: If a due date is present but unreadable
        """
        if self.due_date is None:
            return None
        raw = self.due_date.strip()
        try:
            return date.fromisoformat(raw[:10])
        except ValueError:
            raise DueDateParseError(self.id, self.due_date) from None

    def to_storage_dict(self) -> dict:
        """Full record in the camelCase layout used by the local document."""
        return self.model_dump(mode="json", by_alias=True)


class ExpenseInput(BaseModel):
    """
    Raw user input for a new or edited expense.

    CRITICAL: This is UNVERIFIED data straight from a form.
    Every field is optional so that the validator can report
    all problems at once instead of failing on the first one.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
    )

    name: str = ""
    category: Optional[str] = None
    recurrence: Optional[str] = None
    amount: Optional[float] = Field(default=None, allow_inf_nan=False)
    due_date: Optional[date] = Field(default=None, alias="dueDate")
    notes: str = ""

    @field_validator('category', 'recurrence', mode='before')
    @classmethod
    def enum_to_value(cls, v: Any) -> Any:
        if isinstance(v, Enum):
            return v.value
        return v

    @field_validator('amount', mode='before')
    @classmethod
    def blank_amount_to_none(cls, v: Any) -> Any:
        """Forms submit empty strings for untouched number inputs."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator('notes', mode='before')
    @classmethod
    def none_notes_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class UserContext(BaseModel):
    """The logged-in user a remote store is scoped to."""
    model_config = ConfigDict(str_strip_whitespace=True)

    user_id: str = Field(..., min_length=1)
    username: Optional[str] = None


class StoreSnapshot(BaseModel):
    """Everything a backend holds for one user."""

    records: list[ExpenseRecord] = Field(default_factory=list)
    monthly_budget: float = Field(default=0.0, ge=0)
    monthly_income: float = Field(default=0.0, ge=0)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """Result of validating user input for an expense."""

    validated_at: datetime = Field(
        default_factory=_utcnow
    )
    is_valid: bool = Field(
        ...,
        description="Overall validation result"
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]


# =============================================================================
# OPERATION RESULTS
# =============================================================================

class OperationResult(BaseModel):
    """
    Outcome of a store or session mutation.

    Failures are reported here rather than raised, so the caller can
    surface the message and carry on. When success is False the
    in-memory state has NOT changed.
    """

    success: bool
    error_type: Optional[ErrorType] = None
    error_message: Optional[str] = None
    record: Optional[ExpenseRecord] = None
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def not_found(self) -> bool:
        return self.error_type == ErrorType.NOT_FOUND

    @classmethod
    def ok(cls, record: Optional[ExpenseRecord] = None) -> "OperationResult":
        return cls(success=True, record=record)

    @classmethod
    def failed(
        cls,
        error_type: ErrorType,
        message: str,
        issues: Optional[list[ValidationIssue]] = None,
    ) -> "OperationResult":
        return cls(
            success=False,
            error_type=error_type,
            error_message=message,
            issues=issues or [],
        )
