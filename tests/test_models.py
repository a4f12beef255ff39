"""
Tests for Expense Tracker

Test strategy:
1. Unit tests for individual components (models, filters, query engine)
2. Store and session tests against in-memory or tmp-path backends
3. No real remote calls in tests (use fakes)
"""

import pytest
from datetime import date, datetime
from uuid import uuid4

from expense_tracker.models.expense import (
    DueDateParseError,
    ErrorType,
    ExpenseCategory,
    ExpenseInput,
    ExpenseRecord,
    OperationResult,
    Recurrence,
    StoreSnapshot,
    ValidationIssue,
    ValidationResult,
    get_category_style,
)
from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestExpenseRecord:
    """Tests for the ExpenseRecord model."""

    def test_expense_record_creation(self):
        """Test ExpenseRecord creation with defaults."""
        record = ExpenseRecord(
            name="Rent",
            category=ExpenseCategory.HOUSING,
            recurrence=Recurrence.MONTHLY,
            amount=950.0,
            due_date="2025-01-01",
        )
        assert record.name == "Rent"
        assert record.notes == ""
        assert record.id
        assert isinstance(record.created_at, datetime)

    def test_ids_are_unique(self):
        """Test that each record gets its own id."""
        a = ExpenseRecord(name="A", category="Food", recurrence="Monthly", amount=1)
        b = ExpenseRecord(name="B", category="Food", recurrence="Monthly", amount=1)
        assert a.id != b.id

    def test_name_strips_whitespace(self):
        """Test that whitespace is stripped from the name."""
        record = ExpenseRecord(name="  Gym  ", category="Health", recurrence="Monthly", amount=30)
        assert record.name == "Gym"

    def test_rejects_empty_name(self):
        with pytest.raises(ValueError):
            ExpenseRecord(name="   ", category="Health", recurrence="Monthly", amount=30)

    @pytest.mark.parametrize("amount", [0, -5])
    def test_rejects_non_positive_amount(self, amount):
        """Test that zero and negative amounts are rejected."""
        with pytest.raises(ValueError):
            ExpenseRecord(name="Gym", category="Health", recurrence="Monthly", amount=amount)

    @pytest.mark.parametrize("amount", [float("nan"), float("inf")])
    def test_rejects_non_finite_amount(self, amount):
        with pytest.raises(ValueError):
            ExpenseRecord(name="Gym", category="Health", recurrence="Monthly", amount=amount)

    def test_rejects_unknown_recurrence(self):
        with pytest.raises(ValueError):
            ExpenseRecord(name="Gym", category="Health", recurrence="Weekly", amount=30)

    def test_rejects_unknown_category(self):
        with pytest.raises(ValueError):
            ExpenseRecord(name="Gym", category="Gadgets", recurrence="Monthly", amount=30)

    def test_legacy_numeric_id_is_coerced(self):
        """Legacy local records used Date.now() style numeric ids."""
        record = ExpenseRecord(id=1700000000000, name="Old", category="Other",
                               recurrence="One-time", amount=5)
        assert record.id == "1700000000000"

    def test_camel_case_keys_are_accepted(self):
        record = ExpenseRecord.model_validate({
            "name": "Phone",
            "category": "Utilities",
            "recurrence": "Monthly",
            "amount": 40,
            "dueDate": "2025-02-03",
            "createdAt": "2025-01-01T10:00:00+00:00",
        })
        assert record.due_date == "2025-02-03"
        assert record.created_at.year == 2025

    def test_date_due_date_is_stored_as_iso_text(self):
        record = ExpenseRecord(name="Car", category="Transportation", recurrence="Yearly",
                               amount=400, due_date=date(2025, 7, 4))
        assert record.due_date == "2025-07-04"
        assert record.parse_due_date() == date(2025, 7, 4)

    def test_blank_due_date_means_no_date(self):
        record = ExpenseRecord(name="Car", category="Transportation", recurrence="Yearly",
                               amount=400, due_date="  ")
        assert record.due_date is None
        assert record.parse_due_date() is None

    def test_timestamp_due_date_uses_date_part(self):
        record = ExpenseRecord(name="Car", category="Transportation", recurrence="Yearly",
                               amount=400, due_date="2025-07-04T00:00:00.000Z")
        assert record.parse_due_date() == date(2025, 7, 4)

    def test_unparseable_due_date_loads_but_fails_to_parse(self):
        """Records with a bad date still load; parsing reports the problem."""
        record = ExpenseRecord(name="Odd", category="Other", recurrence="One-time",
                               amount=10, due_date="next tuesday")
        with pytest.raises(DueDateParseError) as exc_info:
            record.parse_due_date()
        assert exc_info.value.raw_value == "next tuesday"

    def test_storage_dict_uses_camel_case(self):
        record = ExpenseRecord(name="Car", category="Transportation", recurrence="Yearly",
                               amount=400, due_date="2025-07-04")
        data = record.to_storage_dict()
        assert data["dueDate"] == "2025-07-04"
        assert data["category"] == "Transportation"
        assert "createdAt" in data


class TestExpenseInput:
    """Tests for the unverified form input model."""

    def test_all_fields_optional(self):
        expense = ExpenseInput()
        assert expense.name == ""
        assert expense.amount is None

    def test_blank_amount_becomes_none(self):
        assert ExpenseInput(amount="  ").amount is None

    def test_enum_values_are_unwrapped(self):
        expense = ExpenseInput(category=ExpenseCategory.FOOD, recurrence=Recurrence.YEARLY)
        assert expense.category == "Food"
        assert expense.recurrence == "Yearly"


class TestResultModels:
    """Tests for validation and operation results."""

    def test_validation_result_has_errors(self):
        result = ValidationResult(
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="missing",
                    message="Amount is required",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            is_valid=True,
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="suspicious_value",
                    message="Amount seems unusually high",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.warnings == ["Amount seems unusually high"]

    def test_operation_result_helpers(self):
        ok = OperationResult.ok()
        failed = OperationResult.failed(ErrorType.NOT_FOUND, "missing")
        assert ok.success and not ok.not_found
        assert not failed.success and failed.not_found
        assert failed.error_message == "missing"

    def test_store_snapshot_defaults(self):
        snapshot = StoreSnapshot()
        assert snapshot.records == []
        assert snapshot.monthly_budget == 0
        assert snapshot.monthly_income == 0


class TestCategories:
    """Tests for the category enum and styles."""

    def test_all_categories_exist(self):
        expected = [
            "Housing", "Utilities", "Transportation", "Food", "Entertainment",
            "Health", "Personal", "Subscriptions", "Education", "Other",
        ]
        assert [c.value for c in ExpenseCategory] == expected

    def test_category_style_lookup(self):
        assert get_category_style("Food") == {"icon": "fa-utensils", "color": "#10b981"}

    def test_unknown_category_style_falls_back(self):
        assert get_category_style("Gadgets")["color"] == "#6b7280"


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        event = AuditEvent(
            event_type=AuditEventType.EXPENSE_ADDED,
            description="Expense added",
        )
        assert event.event_type == AuditEventType.EXPENSE_ADDED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        event = AuditEventBuilder.expense_added(
            expense_id="abc",
            name="Rent",
            amount=950.0,
            correlation_id=uuid4(),
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "expense_added"
        assert log_dict["entity_id"] == "abc"
        assert log_dict["details"]["name"] == "Rent"
        assert event.is_user_action is True

    def test_save_failed_is_an_error(self):
        event = AuditEventBuilder.save_failed(
            operation="delete",
            entity_id="abc",
            error_message="timeout",
            correlation_id=uuid4(),
        )
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "timeout"

    def test_scalar_set_picks_event_type(self):
        correlation_id = uuid4()
        budget = AuditEventBuilder.scalar_set("budget", 100, correlation_id)
        income = AuditEventBuilder.scalar_set("income", 100, correlation_id)
        assert budget.event_type == AuditEventType.BUDGET_SET
        assert income.event_type == AuditEventType.INCOME_SET

    def test_import_with_skips_is_a_warning(self):
        event = AuditEventBuilder.data_imported(3, 1, 0, uuid4())
        assert event.severity == AuditSeverity.WARNING


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
