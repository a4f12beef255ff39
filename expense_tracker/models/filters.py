"""
Filter State

Holds the active category / recurrence / date-range / sort selections.
The Query Engine reads it; UI actions mutate it through the setters below.

All setters are synchronous and total: a value that cannot be applied
leaves the state unchanged instead of raising.
"""

import calendar
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator

from expense_tracker.models.expense import ExpenseCategory, Recurrence


class FilterKind(str, Enum):
    """Filters that can be set or removed individually."""
    CATEGORY = "category"
    RECURRENCE = "recurrence"
    DATE = "date"


class SortKey(str, Enum):
    """Supported sort orders."""
    NAME_ASC = "name-asc"
    NAME_DESC = "name-desc"
    CATEGORY_ASC = "category-asc"
    CATEGORY_DESC = "category-desc"
    RECURRENCE_ASC = "recurrence-asc"
    RECURRENCE_DESC = "recurrence-desc"
    AMOUNT_ASC = "amount-asc"
    AMOUNT_DESC = "amount-desc"
    DATE_ASC = "date-asc"
    DATE_DESC = "date-desc"


class PredefinedRange(str, Enum):
    """Named date ranges, all relative to today."""
    CURRENT_MONTH = "current-month"
    LAST_MONTH = "last-month"
    LAST_3_MONTHS = "last-3-months"
    CURRENT_YEAR = "current-year"
    YEAR_TO_DATE = "year-to-date"


DEFAULT_SORT = SortKey.NAME_ASC.value


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Move (year, month) by delta months, crossing year boundaries."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def _last_day(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def predefined_date_range(
    name: str,
    today: Optional[date] = None,
) -> Optional[tuple[date, date]]:
    """
    Compute the [from, to] bounds for a named range.

    Args:
        name: One of the PredefinedRange values
        today: Reference date (defaults to the real current date)

    Returns:
        (date_from, date_to), or None for an unrecognised name
    """
    today = today or date.today()
    try:
        which = PredefinedRange(name)
    except ValueError:
        return None

    if which == PredefinedRange.CURRENT_YEAR:
        return date(today.year, 1, 1), date(today.year, 12, 31)
    if which == PredefinedRange.CURRENT_MONTH:
        return date(today.year, today.month, 1), _last_day(today.year, today.month)
    if which == PredefinedRange.LAST_MONTH:
        year, month = _shift_month(today.year, today.month, -1)
        return date(year, month, 1), _last_day(year, month)
    if which == PredefinedRange.LAST_3_MONTHS:
        year, month = _shift_month(today.year, today.month, -3)
        return date(year, month, 1), today
    # year-to-date
    return date(today.year, 1, 1), today


def _as_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


class FilterState(BaseModel):
    """
    Active filter and sort configuration.

    Invariant: date_from and date_to are both set or both unset.
    Never persisted; one instance per session.
    """

    category: Optional[ExpenseCategory] = None
    recurrence: Optional[Recurrence] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    sort_by: str = Field(
        default=DEFAULT_SORT,
        description="A SortKey value; anything else means 'keep input order'"
    )

    @model_validator(mode='after')
    def validate_date_bounds(self) -> 'FilterState':
        """Both date bounds must be set together."""
        if (self.date_from is None) != (self.date_to is None):
            raise ValueError("date_from and date_to must be set together")
        return self

    @property
    def has_date_range(self) -> bool:
        return self.date_from is not None and self.date_to is not None

    @property
    def is_filtered(self) -> bool:
        return bool(self.category or self.recurrence or self.has_date_range)

    def set_filter(self, kind: str, value: Any) -> bool:
        """
        Replace the category or recurrence filter.

        An empty value clears the filter. Returns False (and changes
        nothing) for an unknown kind or a value outside the enum.
        """
        try:
            kind = FilterKind(kind)
        except ValueError:
            return False

        if kind == FilterKind.CATEGORY:
            enum_type = ExpenseCategory
        elif kind == FilterKind.RECURRENCE:
            enum_type = Recurrence
        else:
            return False

        if value is None or value == "":
            parsed = None
        else:
            try:
                parsed = enum_type(value)
            except ValueError:
                return False

        setattr(self, kind.value, parsed)
        return True

    def set_date_range(self, date_from: Any, date_to: Any) -> bool:
        """Set both date bounds together. Unreadable dates are ignored."""
        try:
            start, end = _as_date(date_from), _as_date(date_to)
        except (TypeError, ValueError):
            return False
        self.date_from = start
        self.date_to = end
        return True

    def set_predefined_date_range(
        self,
        name: str,
        today: Optional[date] = None,
    ) -> bool:
        """Apply a named range; unknown names leave the filters unchanged."""
        bounds = predefined_date_range(name, today)
        if bounds is None:
            return False
        self.date_from, self.date_to = bounds
        return True

    def remove_filter(self, kind: str) -> bool:
        """Clear one filter. 'date' clears both bounds together."""
        try:
            kind = FilterKind(kind)
        except ValueError:
            return False

        if kind == FilterKind.CATEGORY:
            self.category = None
        elif kind == FilterKind.RECURRENCE:
            self.recurrence = None
        else:
            self.date_from = None
            self.date_to = None
        return True

    def set_sort(self, key: Any) -> None:
        self.sort_by = key.value if isinstance(key, SortKey) else str(key)

    def reset(self, default_sort: str = DEFAULT_SORT) -> None:
        """Back to no filters and the default sort (used on logout)."""
        self.category = None
        self.recurrence = None
        self.date_from = None
        self.date_to = None
        self.sort_by = default_sort

    def describe(self) -> str:
        """Short human-readable summary of the active filters."""
        parts = []
        if self.category:
            parts.append(f"category: {self.category.value}")
        if self.recurrence:
            parts.append(f"recurrence: {self.recurrence.value}")
        if self.has_date_range:
            parts.append(
                f"from {self.date_from.isoformat()} to {self.date_to.isoformat()}"
            )
        if not parts:
            return "All expenses"
        return " | ".join(parts)
