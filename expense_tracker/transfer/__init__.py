"""Export/import package."""

from expense_tracker.transfer.json_io import (
    EXPORT_FIELDS,
    ImportFormatError,
    ImportResult,
    build_export_table,
    export_records_to_json,
    migrate_legacy_record,
    needs_migration,
    parse_import,
    record_to_export_dict,
    records_from_raw,
)

__all__ = [
    "EXPORT_FIELDS",
    "ImportFormatError",
    "ImportResult",
    "build_export_table",
    "export_records_to_json",
    "migrate_legacy_record",
    "needs_migration",
    "parse_import",
    "record_to_export_dict",
    "records_from_raw",
]
