"""
Aggregate result models produced by the Query Engine.
"""

import math
from enum import Enum

from pydantic import BaseModel, Field


class Period(str, Enum):
    """Period an aggregate is normalised to."""
    MONTHLY = "monthly"
    YEARLY = "yearly"


class BudgetStatus(str, Enum):
    """How close the monthly total is to the budget."""
    GOOD = "good"
    WARNING = "warning"
    DANGER = "danger"


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


class CategoryBreakdown(BaseModel):
    """
    Per-category sums for the breakdown chart.

    Categories appear in the order they were first seen in the
    filtered records.
    """

    period: Period
    sums: dict[str, float] = Field(default_factory=dict)
    total: float = 0.0

    def percentages(self) -> dict[str, int]:
        """Share of the total per category, rounded to whole percent."""
        if self.total <= 0:
            return {category: 0 for category in self.sums}
        return {
            category: round_half_up(amount / self.total * 100)
            for category, amount in self.sums.items()
        }


class Totals(BaseModel):
    """Monthly and yearly totals over the filtered records."""

    monthly: float = 0.0
    yearly: float = 0.0
    record_count: int = Field(default=0, ge=0)


class BudgetSummary(BaseModel):
    """
    Budget usage and savings for the current month.

    Savings are reported as a signed value AND as magnitude + sign,
    because the presentation layer renders the sign separately.
    """

    monthly_budget: float = 0.0
    monthly_income: float = 0.0
    monthly_total: float = 0.0
    budget_percentage: int = Field(default=0, ge=0, le=100)
    budget_status: BudgetStatus = BudgetStatus.GOOD
    savings: float = 0.0
    savings_magnitude: float = Field(default=0.0, ge=0)
    savings_negative: bool = False
