"""
Shared fixtures for Expense Tracker tests.

No real backends in tests: remote storage is replaced by an in-memory
fake that can be told to fail, and local storage writes to tmp_path.
"""

from datetime import date
from typing import Any, Optional

import pytest

from expense_tracker.config import AppSettings, StorageSettings
from expense_tracker.models.expense import ExpenseRecord, StoreSnapshot
from expense_tracker.services.storage import (
    ConnectionError,
    ExpenseStorageInterface,
    LocalJSONStorage,
    NotFoundError,
    StorageError,
)


# December, so "earlier this year" and "this month" are both easy to build
FIXED_TODAY = date(2025, 12, 15)


def make_record(
    name: str = "Rent",
    category: str = "Housing",
    recurrence: str = "Monthly",
    amount: float = 100.0,
    due_date: Optional[str] = "2025-12-01",
    **extra: Any,
) -> ExpenseRecord:
    """Build a valid ExpenseRecord with overridable defaults."""
    return ExpenseRecord(
        name=name,
        category=category,
        recurrence=recurrence,
        amount=amount,
        due_date=due_date,
        **extra,
    )


class FakeStorage(ExpenseStorageInterface):
    """
    In-memory backend.

    Put an operation name in `failing` ("fetch_all", "insert", "update",
    "delete", "set_budget", "set_income") to make it raise StorageError.
    """

    kind = "fake"

    def __init__(
        self,
        records: Optional[list[ExpenseRecord]] = None,
        budget: float = 0.0,
        income: float = 0.0,
    ):
        self.records = {r.id: r for r in (records or [])}
        self.budget = budget
        self.income = income
        self.failing: set[str] = set()
        self.unreachable = False
        self.calls: list[str] = []

    def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        if self.unreachable:
            raise ConnectionError("backend unreachable")
        if operation in self.failing:
            raise StorageError(f"{operation} failed")

    async def fetch_all(self, user_id: str) -> StoreSnapshot:
        self._enter("fetch_all")
        return StoreSnapshot(
            records=list(self.records.values()),
            monthly_budget=self.budget,
            monthly_income=self.income,
        )

    async def insert(self, record: ExpenseRecord) -> ExpenseRecord:
        self._enter("insert")
        self.records[record.id] = record
        return record

    async def update(self, expense_id: str, fields: dict[str, Any]) -> ExpenseRecord:
        self._enter("update")
        if expense_id not in self.records:
            raise NotFoundError(f"Expense not found: {expense_id}")
        current = self.records[expense_id]
        updated = ExpenseRecord.model_validate({**current.model_dump(), **fields})
        self.records[expense_id] = updated
        return updated

    async def delete(self, expense_id: str) -> bool:
        self._enter("delete")
        return self.records.pop(expense_id, None) is not None

    async def set_budget(self, amount: float) -> bool:
        self._enter("set_budget")
        self.budget = amount
        return True

    async def set_income(self, amount: float) -> bool:
        self._enter("set_income")
        self.income = amount
        return True


@pytest.fixture
def today() -> date:
    return FIXED_TODAY


@pytest.fixture
def app_settings() -> AppSettings:
    return AppSettings()


@pytest.fixture
def fake_storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def local_storage(tmp_path) -> LocalJSONStorage:
    return LocalJSONStorage(
        path=str(tmp_path / "expenses.json"),
        settings=StorageSettings(),
    )


@pytest.fixture
def scenario_records() -> list[ExpenseRecord]:
    """
    A: Food, Monthly, 100
    B: Food, Yearly, 1200
    C: Housing, One-time, 600, due this month
    """
    return [
        make_record(name="A", category="Food", recurrence="Monthly", amount=100, due_date="2025-01-10"),
        make_record(name="B", category="Food", recurrence="Yearly", amount=1200, due_date="2025-04-01"),
        make_record(name="C", category="Housing", recurrence="One-time", amount=600, due_date="2025-12-05"),
    ]
