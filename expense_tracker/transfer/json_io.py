"""
JSON Export / Import

Exports are a JSON array of expenses with the user-visible fields only:
    {name, category, recurrence, amount, dueDate, notes}

Imports accept the same shape and also the legacy shape that predates
the `recurrence` field, where an `expenseType` of "Recurring" or
"One-time" described the cadence. Entries with `expenseType` but no
`recurrence` are migrated before validation; entries that still don't
validate are skipped and counted, never fatal to the whole import.
"""

import json
from typing import Any, Iterable, Optional

import structlog
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from expense_tracker.models.expense import ExpenseRecord, Recurrence


logger = structlog.get_logger(__name__)

LEGACY_TYPE_FIELD = "expenseType"
LEGACY_RECURRING = "Recurring"

EXPORT_FIELDS = ("name", "category", "recurrence", "amount", "dueDate", "notes")

TABLE_HEADERS = ["Name", "Category", "Recurrence", "Amount", "Due Date", "Notes"]


class ImportFormatError(ValueError):
    """The import payload is not a JSON array of expenses."""
    pass


class ImportResult(BaseModel):
    """Records recovered from an import payload."""

    records: list[ExpenseRecord] = Field(default_factory=list)
    skipped: int = Field(default=0, ge=0)
    errors: list[str] = Field(default_factory=list)
    migrated: int = Field(default=0, ge=0)

    @property
    def imported(self) -> int:
        return len(self.records)


def needs_migration(raw: dict) -> bool:
    return LEGACY_TYPE_FIELD in raw and "recurrence" not in raw


def migrate_legacy_record(raw: dict) -> dict:
    """
    Translate a legacy `expenseType` entry to the `recurrence` layout.

    Only entries without a `recurrence` key are touched. "Recurring"
    becomes Monthly and any other type becomes One-time; the
    `expenseType` key is removed. The input dict is not modified.
    """
    migrated = dict(raw)
    if not needs_migration(migrated):
        return migrated

    expense_type = migrated.pop(LEGACY_TYPE_FIELD)
    if expense_type == LEGACY_RECURRING:
        migrated["recurrence"] = Recurrence.MONTHLY.value
    else:
        migrated["recurrence"] = Recurrence.ONE_TIME.value
    return migrated


def records_from_raw(
    items: Iterable[Any],
    keep_ids: bool = True,
) -> ImportResult:
    """
    Migrate and validate raw expense dicts.

    Args:
        items: Decoded JSON entries
        keep_ids: Keep stored ids/timestamps. Imports pass False so every
                  imported entry becomes a new record.

    Returns:
        ImportResult with the valid records and a count of skipped entries
    """
    result = ImportResult()

    for index, item in enumerate(items):
        if not isinstance(item, dict):
            result.skipped += 1
            result.errors.append(f"Entry {index}: not an object")
            continue

        if needs_migration(item):
            item = migrate_legacy_record(item)
            result.migrated += 1

        if not keep_ids:
            item = {
                key: value for key, value in item.items()
                if key not in ("id", "createdAt", "created_at")
            }

        try:
            result.records.append(ExpenseRecord.model_validate(item))
        except PydanticValidationError as e:
            result.skipped += 1
            fields = sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})
            result.errors.append(f"Entry {index}: invalid {', '.join(fields) or 'data'}")
            logger.warning(
                "expense_entry_skipped",
                index=index,
                name=item.get("name"),
                invalid_fields=fields,
            )

    return result


def record_to_export_dict(record: ExpenseRecord) -> dict:
    """User-visible fields of a record, in export key order."""
    data = record.model_dump(mode="json", by_alias=True)
    return {field: data[field] for field in EXPORT_FIELDS}


def export_records_to_json(records: Iterable[ExpenseRecord], indent: int = 2) -> str:
    """Serialise records to the JSON export format."""
    payload = [record_to_export_dict(record) for record in records]
    return json.dumps(payload, indent=indent, ensure_ascii=False)


def parse_import(text: str) -> ImportResult:
    """
    Parse an import payload.

    Raises:
        ImportFormatError: If the text isn't JSON or isn't a JSON array
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ImportFormatError(f"Error reading file: {e.msg}") from e

    if not isinstance(data, list):
        raise ImportFormatError(
            "Invalid data format. Please import a valid expense data file."
        )

    return records_from_raw(data, keep_ids=False)


def _format_due_date(record: ExpenseRecord) -> str:
    if record.due_date is None:
        return "N/A"
    try:
        return record.parse_due_date().isoformat()
    except ValueError:
        return record.due_date


def build_export_table(
    records: Iterable[ExpenseRecord],
    monthly_total: Optional[float] = None,
    yearly_total: Optional[float] = None,
) -> list[list[str]]:
    """
    Rows for a spreadsheet/PDF writer.

    Header row, one row per record, then a blank row and the totals
    when they are given. Writing the file is left to the consumer.
    """
    rows = [list(TABLE_HEADERS)]
    for record in records:
        rows.append([
            record.name,
            record.category.value,
            record.recurrence.value,
            f"{record.amount:.2f}",
            _format_due_date(record),
            record.notes or "",
        ])

    if monthly_total is not None or yearly_total is not None:
        rows.append([])
        if monthly_total is not None:
            rows.append(["Total Monthly", "", "", f"{monthly_total:.2f}", "", ""])
        if yearly_total is not None:
            rows.append(["Total Yearly", "", "", f"{yearly_total:.2f}", "", ""])

    return rows
