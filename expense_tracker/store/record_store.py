"""
Record Store

The authoritative in-memory holder of the user's expenses plus the
monthly budget and income.

GUARANTEES:
- Exactly one storage backend, chosen when the store is created
- No optimistic writes: memory changes only after the backend confirmed
- Failed writes are reported as OperationResult, never raised
- Update/remove of an unknown id is a "not found" result, not an error

CONCURRENCY: callers must await each mutation before issuing the next
one on the same record. There is no locking or versioning.
"""

from typing import Any, Optional, Union

import structlog
from pydantic import ValidationError as PydanticValidationError

from expense_tracker.models.expense import (
    ErrorType,
    ExpenseRecord,
    OperationResult,
    StoreSnapshot,
)
from expense_tracker.services.storage.interface import (
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    StorageError,
    StoreUnavailable,
)


logger = structlog.get_logger(__name__)

_FIELD_ALIASES = {
    "dueDate": "due_date",
    "createdAt": "created_at",
}


def normalise_changes(changes: Union[dict, Any]) -> dict[str, Any]:
    """
    Map an edit payload onto ExpenseRecord field names.

    camelCase keys are accepted, unknown keys and the id are dropped.
    """
    if hasattr(changes, "model_dump"):
        changes = changes.model_dump(exclude_unset=True)
    normalised = {}
    for key, value in dict(changes).items():
        key = _FIELD_ALIASES.get(key, key)
        if key == "id" or key not in ExpenseRecord.model_fields:
            continue
        normalised[key] = value
    return normalised


class RecordStore:
    """
    Owns the expense collection for one session.

    The Query Engine reads snapshot(); nothing outside this class
    mutates the collection.
    """

    def __init__(self, storage: ExpenseStorageInterface):
        self._storage = storage
        self._records: list[ExpenseRecord] = []
        self._monthly_budget = 0.0
        self._monthly_income = 0.0

    @property
    def storage(self) -> ExpenseStorageInterface:
        return self._storage

    @property
    def records(self) -> list[ExpenseRecord]:
        return list(self._records)

    @property
    def monthly_budget(self) -> float:
        return self._monthly_budget

    @property
    def monthly_income(self) -> float:
        return self._monthly_income

    def __len__(self) -> int:
        return len(self._records)

    def get(self, expense_id: str) -> Optional[ExpenseRecord]:
        index = self._index_of(expense_id)
        return None if index is None else self._records[index]

    def snapshot(self) -> StoreSnapshot:
        """Copy of the current state for read-only consumers."""
        return StoreSnapshot(
            records=list(self._records),
            monthly_budget=self._monthly_budget,
            monthly_income=self._monthly_income,
        )

    def _index_of(self, expense_id: str) -> Optional[int]:
        for index, record in enumerate(self._records):
            if record.id == str(expense_id):
                return index
        return None

    async def load(self, user_id: str) -> StoreSnapshot:
        """
        Replace the in-memory state with what the backend holds.

        Raises:
            StoreUnavailable: If the backend read failed. The in-memory
                              state is left as it was.
        """
        try:
            snapshot = await self._storage.fetch_all(user_id)
        except StorageError as e:
            logger.error(
                "store_load_failed",
                storage=self._storage.kind,
                error=str(e),
            )
            raise StoreUnavailable(f"Could not load expenses: {e}") from e

        self._records = list(snapshot.records)
        self._monthly_budget = snapshot.monthly_budget
        self._monthly_income = snapshot.monthly_income

        logger.info(
            "store_loaded",
            storage=self._storage.kind,
            record_count=len(self._records),
        )
        return self.snapshot()

    async def add(self, record: ExpenseRecord) -> OperationResult:
        """Persist a new record, then append it to the collection."""
        if self._index_of(record.id) is not None:
            return OperationResult.failed(
                ErrorType.STORAGE, f"Expense already exists: {record.id}"
            )

        try:
            stored = await self._storage.insert(record)
        except DuplicateError as e:
            return OperationResult.failed(ErrorType.STORAGE, str(e))
        except StorageError as e:
            logger.error("expense_add_failed", expense_id=record.id, error=str(e))
            return OperationResult.failed(
                ErrorType.STORAGE, f"Error saving expense: {e}"
            )

        self._records.append(stored)
        return OperationResult.ok(stored)

    async def update(self, expense_id: str, changes: Union[dict, Any]) -> OperationResult:
        """
        Replace some fields of a record. The id never changes.

        The merged record is validated before the backend is called.
        """
        index = self._index_of(expense_id)
        if index is None:
            return OperationResult.failed(
                ErrorType.NOT_FOUND, f"Expense not found: {expense_id}"
            )

        fields = normalise_changes(changes)
        current = self._records[index]
        try:
            merged = ExpenseRecord.model_validate({**current.model_dump(), **fields})
        except PydanticValidationError as e:
            return OperationResult.failed(
                ErrorType.VALIDATION, f"Invalid expense data: {e.error_count()} errors"
            )

        try:
            stored = await self._storage.update(current.id, fields)
        except NotFoundError as e:
            return OperationResult.failed(ErrorType.NOT_FOUND, str(e))
        except StorageError as e:
            logger.error("expense_update_failed", expense_id=current.id, error=str(e))
            return OperationResult.failed(
                ErrorType.STORAGE, f"Error updating expense: {e}"
            )

        # The collection may have changed while we awaited the backend
        index = self._index_of(current.id)
        if index is None:
            return OperationResult.failed(
                ErrorType.NOT_FOUND, f"Expense not found: {expense_id}"
            )
        self._records[index] = stored if stored is not None else merged
        return OperationResult.ok(self._records[index])

    async def remove(self, expense_id: str) -> OperationResult:
        """Delete a record from the backend, then from the collection."""
        index = self._index_of(expense_id)
        if index is None:
            return OperationResult.failed(
                ErrorType.NOT_FOUND, f"Expense not found: {expense_id}"
            )

        record = self._records[index]
        try:
            deleted = await self._storage.delete(record.id)
        except StorageError as e:
            logger.error("expense_delete_failed", expense_id=record.id, error=str(e))
            return OperationResult.failed(
                ErrorType.STORAGE, f"Error deleting expense: {e}"
            )

        if not deleted:
            logger.warning("expense_missing_in_storage", expense_id=record.id)

        self._records = [r for r in self._records if r.id != record.id]
        return OperationResult.ok(record)

    async def set_budget(self, amount: float) -> OperationResult:
        """Replace the monthly budget. The caller validated amount >= 0."""
        try:
            await self._storage.set_budget(amount)
        except StorageError as e:
            logger.error("budget_update_failed", error=str(e))
            return OperationResult.failed(
                ErrorType.STORAGE, f"Error saving budget: {e}"
            )
        self._monthly_budget = amount
        return OperationResult.ok()

    async def set_income(self, amount: float) -> OperationResult:
        """Replace the monthly income. The caller validated amount >= 0."""
        try:
            await self._storage.set_income(amount)
        except StorageError as e:
            logger.error("income_update_failed", error=str(e))
            return OperationResult.failed(
                ErrorType.STORAGE, f"Error saving income: {e}"
            )
        self._monthly_income = amount
        return OperationResult.ok()

    def clear(self) -> None:
        """Empty the in-memory collection. Persisted data is untouched."""
        self._records = []
