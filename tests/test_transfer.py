"""
Tests for JSON export/import and legacy migration.
"""

import json

import pytest

from expense_tracker.transfer import (
    ImportFormatError,
    build_export_table,
    export_records_to_json,
    migrate_legacy_record,
    needs_migration,
    parse_import,
    records_from_raw,
)

from tests.conftest import make_record


class TestLegacyMigration:
    """Tests for the expenseType -> recurrence migration."""

    def test_recurring_defaults_to_monthly(self):
        migrated = migrate_legacy_record({"name": "Gym", "expenseType": "Recurring"})
        assert migrated == {"name": "Gym", "recurrence": "Monthly"}

    def test_recurring_keeps_existing_recurrence(self):
        """Entries that already carry a recurrence are left exactly as they are."""
        raw = {"expenseType": "Recurring", "recurrence": "Yearly"}
        assert not needs_migration(raw)
        assert migrate_legacy_record(raw) == raw

    def test_other_types_become_one_time(self):
        for expense_type in ("One-time", "Variable", ""):
            migrated = migrate_legacy_record({"expenseType": expense_type})
            assert migrated == {"recurrence": "One-time"}

    def test_existing_recurrence_wins_over_legacy_type(self):
        raw = {"name": "Gym", "expenseType": "One-time", "recurrence": "Monthly"}
        assert not needs_migration(raw)
        assert migrate_legacy_record(raw)["recurrence"] == "Monthly"

    def test_entry_with_both_keys_is_not_counted_as_migrated(self):
        result = records_from_raw([
            {"name": "Gym", "category": "Health", "expenseType": "One-time",
             "recurrence": "Monthly", "amount": 30},
        ])
        assert result.migrated == 0
        assert result.records[0].recurrence.value == "Monthly"

    def test_input_is_not_modified(self):
        raw = {"expenseType": "Recurring"}
        migrate_legacy_record(raw)
        assert raw == {"expenseType": "Recurring"}

    def test_current_records_pass_through(self):
        raw = {"name": "Gym", "recurrence": "Yearly"}
        assert not needs_migration(raw)
        assert migrate_legacy_record(raw) == raw


class TestRecordsFromRaw:
    """Tests for validating decoded entries."""

    def test_counts_migrated_and_skipped(self):
        result = records_from_raw([
            {"name": "Gym", "category": "Health", "expenseType": "Recurring", "amount": 30},
            {"name": "Bad", "category": "Health", "recurrence": "Monthly", "amount": 0},
            42,
        ])
        assert result.imported == 1
        assert result.migrated == 1
        assert result.skipped == 2
        assert len(result.errors) == 2

    def test_ids_dropped_when_requested(self):
        result = records_from_raw(
            [{"id": "keep-me", "name": "Gym", "category": "Health",
              "recurrence": "Monthly", "amount": 30}],
            keep_ids=False,
        )
        assert result.records[0].id != "keep-me"


class TestExport:
    """Tests for JSON and table export."""

    def test_export_has_user_fields_only(self):
        record = make_record(name="Gym", category="Health", amount=30, notes="6am")
        exported = json.loads(export_records_to_json([record]))
        assert exported == [{
            "name": "Gym",
            "category": "Health",
            "recurrence": "Monthly",
            "amount": 30.0,
            "dueDate": "2025-12-01",
            "notes": "6am",
        }]

    def test_export_then_import_gives_equal_records(self):
        records = [
            make_record(name="Gym", category="Health", amount=30),
            make_record(name="Laptop", category="Personal", recurrence="One-time",
                        amount=999.99, due_date="2025-03-02", notes="work"),
        ]
        result = parse_import(export_records_to_json(records))

        def visible(record):
            return record.model_dump(exclude={"id", "created_at"})

        assert [visible(r) for r in result.records] == [visible(r) for r in records]
        assert {r.id for r in result.records}.isdisjoint({r.id for r in records})

    def test_empty_export(self):
        assert json.loads(export_records_to_json([])) == []

    def test_table_rows(self):
        records = [
            make_record(name="Gym", category="Health", amount=30),
            make_record(name="Gift", category="Other", recurrence="One-time",
                        amount=12.5, due_date=None),
        ]
        rows = build_export_table(records, monthly_total=42.5, yearly_total=372)
        assert rows[0] == ["Name", "Category", "Recurrence", "Amount", "Due Date", "Notes"]
        assert rows[1] == ["Gym", "Health", "Monthly", "30.00", "2025-12-01", ""]
        assert rows[2][3:5] == ["12.50", "N/A"]
        assert rows[3] == []
        assert rows[4][0] == "Total Monthly"
        assert rows[4][3] == "42.50"
        assert rows[5][3] == "372.00"

    def test_table_without_totals(self):
        rows = build_export_table([make_record()])
        assert len(rows) == 2


class TestParseImport:
    """Tests for import payload parsing."""

    def test_not_json(self):
        with pytest.raises(ImportFormatError):
            parse_import("not json at all")

    def test_not_an_array(self):
        with pytest.raises(ImportFormatError):
            parse_import('{"expenses": []}')

    def test_legacy_payload(self):
        payload = json.dumps([
            {"name": "Netflix", "category": "Subscriptions", "expenseType": "Recurring",
             "amount": 15, "dueDate": "2025-01-05"},
            {"name": "Sofa", "category": "Housing", "expenseType": "One-time",
             "amount": 700, "dueDate": "2025-05-05"},
        ])
        result = parse_import(payload)
        assert [r.recurrence.value for r in result.records] == ["Monthly", "One-time"]
        assert result.migrated == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
