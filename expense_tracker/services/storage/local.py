"""
Local File Storage Implementation

Used when nobody is logged in. Mirrors browser local storage: one JSON
document holding the expense collection and the two scalars under fixed
keys, read and written wholesale on every operation.

TRADEOFFS:
- Every mutation rewrites the whole document (fine for personal use)
- Single user per file; the user_id passed to fetch_all is ignored
- Writes are synchronous inside the coroutine, so they are durable
  by the time the awaiting caller resumes

Writes go through a temporary file and os.replace so a crash mid-write
never leaves a truncated document behind.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from expense_tracker.config import StorageSettings, get_settings
from expense_tracker.models.expense import ExpenseRecord, StoreSnapshot
from expense_tracker.services.storage.interface import (
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    StorageError,
)
from expense_tracker.transfer.json_io import (
    migrate_legacy_record,
    needs_migration,
    records_from_raw,
)


logger = structlog.get_logger(__name__)


def _parse_scalar(value: Any) -> float:
    """Read a stored budget/income value; anything unusable counts as 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if number > 0 else 0.0


class LocalJSONStorage(ExpenseStorageInterface):
    """
    Expense storage in a single local JSON document.
    """

    kind = "local"

    def __init__(
        self,
        path: Optional[str] = None,
        settings: Optional[StorageSettings] = None,
    ):
        self._settings = settings or get_settings().storage
        self._path = Path(path or self._settings.path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def _read_document(self) -> dict:
        """Load the whole document; a missing file is an empty store."""
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except json.JSONDecodeError as e:
            raise StorageError(f"Local data file is corrupt: {e}")
        except OSError as e:
            raise StorageError(f"Failed to read local data: {e}")
        if not isinstance(data, dict):
            raise StorageError("Local data file does not hold a JSON object")
        return data

    def _write_document(self, document: dict) -> None:
        """Replace the whole document atomically."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(document, handle, indent=2, ensure_ascii=False)
                os.replace(tmp_name, self._path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write local data: {e}")

    def _raw_expenses(self, document: dict) -> list:
        items = document.get(self._settings.expenses_key)
        return list(items) if isinstance(items, list) else []

    @staticmethod
    def _find_index(items: list, expense_id: str) -> Optional[int]:
        for index, item in enumerate(items):
            if isinstance(item, dict) and str(item.get("id")) == str(expense_id):
                return index
        return None

    async def fetch_all(self, user_id: str) -> StoreSnapshot:
        """Read the document, migrating legacy entries in place."""
        document = self._read_document()
        items = self._raw_expenses(document)

        if any(isinstance(item, dict) and needs_migration(item) for item in items):
            items = [
                migrate_legacy_record(item)
                if isinstance(item, dict) and needs_migration(item) else item
                for item in items
            ]
            document[self._settings.expenses_key] = items
            self._write_document(document)
            logger.info("local_expenses_migrated", path=str(self._path))

        loaded = records_from_raw(items, keep_ids=True)
        if loaded.skipped:
            logger.warning(
                "local_expenses_skipped",
                path=str(self._path),
                skipped=loaded.skipped,
            )

        return StoreSnapshot(
            records=loaded.records,
            monthly_budget=_parse_scalar(document.get(self._settings.budget_key)),
            monthly_income=_parse_scalar(document.get(self._settings.income_key)),
        )

    async def insert(self, record: ExpenseRecord) -> ExpenseRecord:
        document = self._read_document()
        items = self._raw_expenses(document)

        if self._find_index(items, record.id) is not None:
            raise DuplicateError(f"Expense already exists: {record.id}")

        items.append(record.to_storage_dict())
        document[self._settings.expenses_key] = items
        self._write_document(document)
        return record

    async def update(self, expense_id: str, fields: dict[str, Any]) -> ExpenseRecord:
        document = self._read_document()
        items = self._raw_expenses(document)

        index = self._find_index(items, expense_id)
        if index is None:
            raise NotFoundError(f"Expense not found: {expense_id}")

        try:
            current = ExpenseRecord.model_validate(items[index])
            changes = {k: v for k, v in fields.items() if k != "id"}
            updated = ExpenseRecord.model_validate(
                {**current.model_dump(), **changes}
            )
        except PydanticValidationError as e:
            raise StorageError(f"Failed to update expense {expense_id}: {e}")

        items[index] = updated.to_storage_dict()
        document[self._settings.expenses_key] = items
        self._write_document(document)
        return updated

    async def delete(self, expense_id: str) -> bool:
        document = self._read_document()
        items = self._raw_expenses(document)

        index = self._find_index(items, expense_id)
        if index is None:
            return False

        del items[index]
        document[self._settings.expenses_key] = items
        self._write_document(document)
        return True

    async def _set_scalar(self, key: str, amount: float) -> bool:
        document = self._read_document()
        document[key] = amount
        self._write_document(document)
        return True

    async def set_budget(self, amount: float) -> bool:
        return await self._set_scalar(self._settings.budget_key, amount)

    async def set_income(self, amount: float) -> bool:
        return await self._set_scalar(self._settings.income_key, amount)
