"""
Tests for expense input validation.
"""

from datetime import date

import pytest

from expense_tracker.config import AppSettings
from expense_tracker.models.expense import ExpenseInput, Recurrence
from expense_tracker.validation import ExpenseValidator, ValidationError


@pytest.fixture
def validator():
    return ExpenseValidator(AppSettings(max_expense_amount=1000, max_name_length=10))


def valid_input(**overrides):
    data = {
        "name": "Gym",
        "category": "Health",
        "recurrence": "Monthly",
        "amount": "30",
        "dueDate": "2025-01-15",
        "notes": "",
    }
    data.update(overrides)
    return data


class TestExpenseValidator:
    """Tests for ExpenseValidator."""

    def test_valid_input(self, validator):
        result = validator.validate(valid_input())
        assert result.is_valid
        assert result.issues == []

    def test_all_problems_reported_at_once(self, validator):
        result = validator.validate({})
        assert not result.is_valid
        fields = {issue.field for issue in result.issues}
        assert fields == {"name", "category", "recurrence", "amount", "due_date"}

    @pytest.mark.parametrize("amount", [0, -1, "-0.5"])
    def test_non_positive_amount(self, validator, amount):
        result = validator.validate(valid_input(amount=amount))
        assert [i.issue_type for i in result.issues] == ["invalid_value"]

    def test_non_numeric_amount(self, validator):
        result = validator.validate(valid_input(amount="thirty"))
        assert not result.is_valid
        assert result.issues[0].field == "amount"

    @pytest.mark.parametrize("amount", ["nan", "inf", "-inf", float("nan"), float("inf")])
    def test_non_finite_amount_is_an_error(self, validator, amount):
        """NaN and infinity are rejected, not passed through as warnings."""
        result = validator.validate(valid_input(amount=amount))
        assert not result.is_valid
        assert [i.field for i in result.issues if i.severity == "error"] == ["amount"]

    def test_non_finite_amount_never_builds_a_record(self, validator):
        with pytest.raises(ValidationError) as exc_info:
            validator.build_record(valid_input(amount="nan"))
        assert exc_info.value.issues[0].field == "amount"

    def test_unknown_category(self, validator):
        result = validator.validate(valid_input(category="Gadgets"))
        assert not result.is_valid

    def test_unknown_recurrence(self, validator):
        result = validator.validate(valid_input(recurrence="Weekly"))
        assert not result.is_valid

    def test_large_amount_is_only_a_warning(self, validator):
        result = validator.validate(valid_input(amount=5000))
        assert result.is_valid
        assert len(result.warnings) == 1

    def test_long_name_is_only_a_warning(self, validator):
        result = validator.validate(valid_input(name="A very long expense name"))
        assert result.is_valid
        assert result.issues[0].issue_type == "too_long"

    def test_accepts_expense_input_model(self, validator):
        expense = ExpenseInput(
            name="Gym", category="Health", recurrence="Yearly",
            amount=300, due_date=date(2025, 1, 1),
        )
        assert validator.validate(expense).is_valid


class TestBuildRecord:
    """Tests for turning valid input into a record."""

    def test_build_record(self, validator):
        record = validator.build_record(valid_input(notes=" early "))
        assert record.amount == 30
        assert record.recurrence == Recurrence.MONTHLY
        assert record.due_date == "2025-01-15"
        assert record.notes == "early"

    def test_build_record_keeps_given_id(self, validator):
        assert validator.build_record(valid_input(), expense_id="abc").id == "abc"

    def test_build_record_raises_with_issues(self, validator):
        with pytest.raises(ValidationError) as exc_info:
            validator.build_record(valid_input(name="", amount=None))
        assert {i.field for i in exc_info.value.issues} == {"name", "amount"}
        assert "Expense name is required" in str(exc_info.value)


class TestScalarValidation:
    """Tests for budget/income values."""

    @pytest.mark.parametrize("value,expected", [(0, 0.0), ("1500", 1500.0), (99.5, 99.5)])
    def test_accepts_non_negative_numbers(self, validator, value, expected):
        assert validator.validate_scalar("budget", value) == expected

    @pytest.mark.parametrize("value", [-1, "abc", None, float("nan"), "inf"])
    def test_rejects_bad_values(self, validator, value):
        with pytest.raises(ValidationError):
            validator.validate_scalar("income", value)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
