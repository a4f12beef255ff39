"""
Expense Input Validation

Validation happens BEFORE anything reaches the Record Store.

Checks on a submitted expense:
- Name present
- Category and recurrence present and known
- Amount present and strictly positive
- Due date present
- Suspiciously large amounts and over-long names (warnings only)

Budget and income values are checked separately: they must be
non-negative numbers.

IMPORTANT: Validation NEVER silently fixes issues.
It reports all of them at once so the form can show every problem.
"""

import math
from typing import Any, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from expense_tracker.config import AppSettings, get_settings
from expense_tracker.models.expense import (
    ExpenseCategory,
    ExpenseInput,
    ExpenseRecord,
    Recurrence,
    ValidationIssue,
    ValidationResult,
)


class ValidationError(Exception):
    """User input was rejected; carries every issue found."""

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        messages = [issue.message for issue in issues if issue.severity == "error"]
        super().__init__("; ".join(messages) or "Invalid input")


def _error(field: str, issue_type: str, message: str) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type=issue_type,
        message=message,
        severity="error",
    )


class ExpenseValidator:
    """
    Validates user input for expenses, budget and income.
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def _coerce(
        self,
        data: Union[ExpenseInput, dict],
    ) -> tuple[Optional[ExpenseInput], list[ValidationIssue]]:
        """Turn a raw form dict into ExpenseInput, reporting type errors."""
        if isinstance(data, ExpenseInput):
            return data, []
        try:
            return ExpenseInput.model_validate(data), []
        except PydanticValidationError as e:
            issues = []
            for err in e.errors():
                field = str(err["loc"][0]) if err["loc"] else "input"
                issues.append(_error(field, "invalid_format", f"{field}: {err['msg']}"))
            return None, issues

    def validate(self, data: Union[ExpenseInput, dict]) -> ValidationResult:
        """
        Validate a submitted expense.

        Returns:
            ValidationResult listing every issue; is_valid is False
            when any error-level issue was found
        """
        expense, issues = self._coerce(data)
        if expense is None:
            return ValidationResult(is_valid=False, issues=issues)

        if not expense.name:
            issues.append(_error("name", "missing", "Expense name is required"))
        elif len(expense.name) > self._settings.max_name_length:
            issues.append(ValidationIssue(
                field="name",
                issue_type="too_long",
                message=f"Expense name is longer than {self._settings.max_name_length} characters",
                severity="warning",
            ))

        if not expense.category:
            issues.append(_error("category", "missing", "Category is required"))
        elif expense.category not in {c.value for c in ExpenseCategory}:
            issues.append(_error(
                "category", "invalid_value", f"Unknown category: {expense.category}"
            ))

        if not expense.recurrence:
            issues.append(_error("recurrence", "missing", "Recurrence is required"))
        elif expense.recurrence not in {r.value for r in Recurrence}:
            issues.append(_error(
                "recurrence", "invalid_value", f"Unknown recurrence: {expense.recurrence}"
            ))

        if expense.amount is None:
            issues.append(_error("amount", "missing", "Amount is required"))
        elif not math.isfinite(expense.amount):
            issues.append(_error(
                "amount", "invalid_value", "Amount must be a finite number"
            ))
        elif expense.amount <= 0:
            issues.append(_error(
                "amount", "invalid_value", "Amount must be greater than zero"
            ))
        elif expense.amount > self._settings.max_expense_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({expense.amount:,.2f}) seems unusually high",
                severity="warning",
            ))

        if expense.due_date is None:
            issues.append(_error("due_date", "missing", "Due date is required"))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return ValidationResult(is_valid=is_valid, issues=issues)

    def build_record(
        self,
        data: Union[ExpenseInput, dict],
        expense_id: Optional[str] = None,
    ) -> ExpenseRecord:
        """
        Validate input and turn it into a new ExpenseRecord.

        Raises:
            ValidationError: If any error-level issue was found
        """
        result = self.validate(data)
        if not result.is_valid:
            raise ValidationError(result.issues)

        expense = data if isinstance(data, ExpenseInput) else ExpenseInput.model_validate(data)
        fields: dict[str, Any] = {
            "name": expense.name,
            "category": expense.category,
            "recurrence": expense.recurrence,
            "amount": expense.amount,
            "due_date": expense.due_date,
            "notes": expense.notes,
        }
        if expense_id is not None:
            fields["id"] = expense_id
        try:
            return ExpenseRecord.model_validate(fields)
        except PydanticValidationError as e:
            issues = []
            for err in e.errors():
                field = str(err["loc"][0]) if err["loc"] else "input"
                issues.append(_error(field, "invalid_value", f"{field}: {err['msg']}"))
            raise ValidationError(issues)

    def validate_scalar(self, field: str, amount: Any) -> float:
        """
        Check a budget or income value.

        Raises:
            ValidationError: If the value is not a non-negative number
        """
        try:
            value = float(amount)
        except (TypeError, ValueError):
            raise ValidationError([
                _error(field, "invalid_format", f"Monthly {field} must be a number")
            ])
        if not math.isfinite(value):
            raise ValidationError([
                _error(field, "invalid_value", f"Monthly {field} must be a finite number")
            ])
        if value < 0:
            raise ValidationError([
                _error(field, "invalid_value", f"Monthly {field} cannot be negative")
            ])
        return value
