"""
Query Engine

DESIGN DECISION: Every query is a pure read.
The functions in this module take a sequence of records (plus the
filter state and a reference date) and return new lists or numbers.
They never mutate a record and never touch storage.

Proration rules:
    monthly total   Monthly -> amount
                    Yearly  -> amount / 12
                    One-time -> amount when the recurrence filter is
                                'One-time', else amount only if due in
                                the current month, else 0
    yearly total    Monthly -> amount * 12
                    Yearly  -> amount
                    One-time -> amount when the recurrence filter is
                                'One-time', else amount only if due in
                                the current year, else 0
    breakdown       One-time is ALWAYS amount / 12 (monthly view) or
                    amount (yearly view), whatever the recurrence filter.

The breakdown does not follow the totals for One-time expenses. Both
behaviours are kept as they are; do not unify them.

A record with an unreadable due date is logged and treated as undated.
It never makes a query fail.
"""

from datetime import date
from typing import Callable, Iterable, Optional, Sequence, Union

import structlog

from expense_tracker.config import AppSettings, get_settings
from expense_tracker.models.expense import (
    RECURRENCE_ORDER,
    DueDateParseError,
    ExpenseRecord,
    Recurrence,
)
from expense_tracker.models.filters import FilterState, SortKey
from expense_tracker.models.summary import (
    BudgetStatus,
    BudgetSummary,
    CategoryBreakdown,
    Period,
    Totals,
    round_half_up,
)
from expense_tracker.store.record_store import RecordStore


logger = structlog.get_logger(__name__)

DEFAULT_TOP_EXPENSES = 8


def _safe_due_date(record: ExpenseRecord) -> Optional[date]:
    """Due date, or None when missing or unreadable (logged)."""
    try:
        return record.parse_due_date()
    except DueDateParseError as e:
        logger.warning(
            "invalid_due_date",
            expense_id=record.id,
            name=record.name,
            due_date=e.raw_value,
        )
        return None


# =============================================================================
# FILTERING
# =============================================================================

def matches_filters(
    record: ExpenseRecord,
    filters: FilterState,
    today: Optional[date] = None,
) -> bool:
    """
    Does a record pass every active filter?

    The date clause only applies when both bounds are set. Under it:
    - the record needs a readable due date
    - One-time: inside [from, to], OR due in the current year while the
      range covers the current year (so year-level views still show
      this year's one-off expenses)
    - Monthly/Yearly: inside [from, to]
    """
    if filters.category and record.category != filters.category:
        return False

    if filters.recurrence and record.recurrence != filters.recurrence:
        return False

    if filters.has_date_range:
        if record.due_date is None:
            return False
        due = _safe_due_date(record)
        if due is None:
            return False

        in_range = filters.date_from <= due <= filters.date_to
        if record.recurrence == Recurrence.ONE_TIME:
            if in_range:
                return True
            current_year = (today or date.today()).year
            in_current_year = due.year == current_year
            range_covers_current_year = (
                filters.date_from.year <= current_year <= filters.date_to.year
            )
            return in_current_year and range_covers_current_year
        return in_range

    return True


def filter_records(
    records: Iterable[ExpenseRecord],
    filters: FilterState,
    today: Optional[date] = None,
) -> list[ExpenseRecord]:
    """Records passing the filters, in input order."""
    today = today or date.today()
    filtered = [r for r in records if matches_filters(r, filters, today)]
    logger.debug("expenses_filtered", matched=len(filtered), filters=filters.describe())
    return filtered


# =============================================================================
# SORTING
# =============================================================================

def sort_records(
    records: Sequence[ExpenseRecord],
    sort_by: Union[str, SortKey],
) -> list[ExpenseRecord]:
    """
    Stable sort by one of the SortKey values.

    Records without a (readable) due date go last in BOTH date orders.
    An unknown key returns the records in their input order.
    """
    try:
        key = SortKey(sort_by)
    except ValueError:
        return list(records)

    if key in (SortKey.NAME_ASC, SortKey.NAME_DESC):
        return sorted(
            records,
            key=lambda r: r.name.casefold(),
            reverse=key == SortKey.NAME_DESC,
        )
    if key in (SortKey.CATEGORY_ASC, SortKey.CATEGORY_DESC):
        return sorted(
            records,
            key=lambda r: r.category.value.casefold(),
            reverse=key == SortKey.CATEGORY_DESC,
        )
    if key in (SortKey.RECURRENCE_ASC, SortKey.RECURRENCE_DESC):
        return sorted(
            records,
            key=lambda r: RECURRENCE_ORDER[r.recurrence],
            reverse=key == SortKey.RECURRENCE_DESC,
        )
    if key in (SortKey.AMOUNT_ASC, SortKey.AMOUNT_DESC):
        return sorted(
            records,
            key=lambda r: r.amount,
            reverse=key == SortKey.AMOUNT_DESC,
        )

    # date-asc / date-desc
    dated = []
    undated = []
    for record in records:
        due = _safe_due_date(record)
        if due is None:
            undated.append(record)
        else:
            dated.append((due, record))
    dated.sort(key=lambda pair: pair[0], reverse=key == SortKey.DATE_DESC)
    return [record for _, record in dated] + undated


# =============================================================================
# AGGREGATION
# =============================================================================

def monthly_amount(
    record: ExpenseRecord,
    recurrence_filter: Optional[Recurrence] = None,
    today: Optional[date] = None,
) -> float:
    """What one record adds to the monthly total."""
    if record.recurrence == Recurrence.MONTHLY:
        return record.amount
    if record.recurrence == Recurrence.YEARLY:
        return record.amount / 12
    if recurrence_filter == Recurrence.ONE_TIME:
        return record.amount
    due = _safe_due_date(record)
    today = today or date.today()
    if due is not None and due.year == today.year and due.month == today.month:
        return record.amount
    return 0.0


def yearly_amount(
    record: ExpenseRecord,
    recurrence_filter: Optional[Recurrence] = None,
    today: Optional[date] = None,
) -> float:
    """What one record adds to the yearly total."""
    if record.recurrence == Recurrence.MONTHLY:
        return record.amount * 12
    if record.recurrence == Recurrence.YEARLY:
        return record.amount
    if recurrence_filter == Recurrence.ONE_TIME:
        return record.amount
    due = _safe_due_date(record)
    today = today or date.today()
    if due is not None and due.year == today.year:
        return record.amount
    return 0.0


def compute_monthly_total(
    records: Iterable[ExpenseRecord],
    recurrence_filter: Optional[Recurrence] = None,
    today: Optional[date] = None,
) -> float:
    """Monthly total over an already-filtered set."""
    today = today or date.today()
    return sum(monthly_amount(r, recurrence_filter, today) for r in records)


def compute_yearly_total(
    records: Iterable[ExpenseRecord],
    recurrence_filter: Optional[Recurrence] = None,
    today: Optional[date] = None,
) -> float:
    """Yearly total over an already-filtered set."""
    today = today or date.today()
    return sum(yearly_amount(r, recurrence_filter, today) for r in records)


def compute_category_breakdown(
    records: Iterable[ExpenseRecord],
    period: Union[str, Period] = Period.MONTHLY,
) -> CategoryBreakdown:
    """
    Per-category sums over an already-filtered set.

    One-time expenses are prorated unconditionally (amount / 12 in the
    monthly view), unlike the monthly total.
    """
    period = Period(period)
    sums: dict[str, float] = {}
    total = 0.0

    for record in records:
        if record.recurrence == Recurrence.MONTHLY:
            amount = record.amount if period == Period.MONTHLY else record.amount * 12
        elif record.recurrence == Recurrence.YEARLY:
            amount = record.amount / 12 if period == Period.MONTHLY else record.amount
        else:
            amount = record.amount / 12 if period == Period.MONTHLY else record.amount

        category = record.category.value
        sums[category] = sums.get(category, 0.0) + amount
        total += amount

    return CategoryBreakdown(period=period, sums=sums, total=total)


def compute_top_expenses(
    records: Sequence[ExpenseRecord],
    limit: int = DEFAULT_TOP_EXPENSES,
) -> list[ExpenseRecord]:
    """Largest amounts first, truncated to limit. Ties keep input order."""
    ranked = sorted(records, key=lambda r: r.amount, reverse=True)
    return ranked[:max(limit, 0)]


# =============================================================================
# BUDGET & SAVINGS
# =============================================================================

def budget_percentage(monthly_total: float, budget: float) -> int:
    """Share of the budget used, rounded and capped at 100."""
    if budget <= 0:
        return 0
    return min(100, round_half_up(monthly_total / budget * 100))


def budget_status(
    percentage: int,
    warning_threshold: int = 70,
    danger_threshold: int = 90,
) -> BudgetStatus:
    if percentage < warning_threshold:
        return BudgetStatus.GOOD
    if percentage < danger_threshold:
        return BudgetStatus.WARNING
    return BudgetStatus.DANGER


def compute_budget_summary(
    monthly_total: float,
    budget: float,
    income: float,
    warning_threshold: int = 70,
    danger_threshold: int = 90,
) -> BudgetSummary:
    """Budget usage plus savings (income minus monthly total)."""
    percentage = budget_percentage(monthly_total, budget)
    savings = income - monthly_total
    return BudgetSummary(
        monthly_budget=budget,
        monthly_income=income,
        monthly_total=monthly_total,
        budget_percentage=percentage,
        budget_status=budget_status(percentage, warning_threshold, danger_threshold),
        savings=savings,
        savings_magnitude=abs(savings),
        savings_negative=savings < 0,
    )


# =============================================================================
# ENGINE BOUND TO A SESSION
# =============================================================================

class QueryEngine:
    """
    Runs the queries above against a Record Store and a Filter State.

    Every call reads a fresh snapshot, so results always reflect the
    latest confirmed store state and the latest filter changes.
    """

    def __init__(
        self,
        store: RecordStore,
        filters: FilterState,
        clock: Callable[[], date] = date.today,
        settings: Optional[AppSettings] = None,
    ):
        self._store = store
        self._filters = filters
        self._clock = clock
        self._settings = settings or get_settings().app

    @property
    def filters(self) -> FilterState:
        return self._filters

    def today(self) -> date:
        return self._clock()

    def _filtered(self, today: date) -> list[ExpenseRecord]:
        return filter_records(self._store.snapshot().records, self._filters, today)

    def filtered_expenses(self) -> list[ExpenseRecord]:
        """Filtered records in the active sort order."""
        return sort_records(self._filtered(self.today()), self._filters.sort_by)

    def monthly_total(self) -> float:
        today = self.today()
        return compute_monthly_total(self._filtered(today), self._filters.recurrence, today)

    def yearly_total(self) -> float:
        today = self.today()
        return compute_yearly_total(self._filtered(today), self._filters.recurrence, today)

    def totals(self) -> Totals:
        today = self.today()
        filtered = self._filtered(today)
        recurrence = self._filters.recurrence
        return Totals(
            monthly=compute_monthly_total(filtered, recurrence, today),
            yearly=compute_yearly_total(filtered, recurrence, today),
            record_count=len(filtered),
        )

    def category_breakdown(self, period: Union[str, Period] = Period.MONTHLY) -> CategoryBreakdown:
        return compute_category_breakdown(self._filtered(self.today()), period)

    def top_expenses(self, limit: Optional[int] = None) -> list[ExpenseRecord]:
        if limit is None:
            limit = self._settings.top_expenses_limit
        return compute_top_expenses(self.filtered_expenses(), limit)

    def budget_summary(self) -> BudgetSummary:
        return compute_budget_summary(
            monthly_total=self.monthly_total(),
            budget=self._store.monthly_budget,
            income=self._store.monthly_income,
            warning_threshold=self._settings.budget_warning_threshold,
            danger_threshold=self._settings.budget_danger_threshold,
        )
