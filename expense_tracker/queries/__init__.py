"""Query engine package."""

from expense_tracker.queries.engine import (
    DEFAULT_TOP_EXPENSES,
    QueryEngine,
    budget_percentage,
    budget_status,
    compute_budget_summary,
    compute_category_breakdown,
    compute_monthly_total,
    compute_top_expenses,
    compute_yearly_total,
    filter_records,
    matches_filters,
    monthly_amount,
    sort_records,
    yearly_amount,
)

__all__ = [
    "DEFAULT_TOP_EXPENSES",
    "QueryEngine",
    "budget_percentage",
    "budget_status",
    "compute_budget_summary",
    "compute_category_breakdown",
    "compute_monthly_total",
    "compute_top_expenses",
    "compute_yearly_total",
    "filter_records",
    "matches_filters",
    "monthly_amount",
    "sort_records",
    "yearly_amount",
]
