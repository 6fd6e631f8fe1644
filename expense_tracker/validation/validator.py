"""
Expense Field Validation

DESIGN DECISION: The store validates every add and edit itself instead
of trusting the UI to have done it. Whatever calls the store - the
Streamlit page, a script, a test - gets the same guarantees:

- amount is a positive whole number
- category belongs to the closed set
- note is text, and non-empty when the required-note policy is on
- id and createdAt are never edited

IMPORTANT: Validation NEVER silently fixes input.
It reports issues and the store refuses to persist.
"""

from collections.abc import Mapping
from typing import Any, Optional

from expense_tracker.config import get_settings
from expense_tracker.models.expense import (
    ExpenseCategory,
    ValidationIssue,
    ValidationResult,
)


EDITABLE_FIELDS = ("amount", "category", "note")
IMMUTABLE_FIELDS = ("id", "created_at", "createdAt")


class ExpenseValidationError(ValueError):
    """Raised when expense fields fail validation."""

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__(result.summary() or "Invalid expense")


class ExpenseValidator:
    """
    Validates user-supplied expense fields.

    New expenses need every editable field; edits only check the
    fields they carry.
    """

    def __init__(self, require_note: Optional[bool] = None):
        """
        Initialize validator.

        Args:
            require_note: Reject empty notes. Defaults to the
                          EXPENSE_REQUIRE_NOTE setting.
        """
        if require_note is None:
            require_note = get_settings().app.require_note
        self._require_note = require_note

    @property
    def require_note(self) -> bool:
        return self._require_note

    def _check_amount(self, value: Any) -> list[ValidationIssue]:
        if isinstance(value, bool) or not isinstance(value, int):
            return [ValidationIssue(
                field="amount",
                issue_type="invalid_type",
                message="Amount must be a whole number",
            )]
        if value <= 0:
            return [ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
            )]
        return []

    def _check_category(self, value: Any) -> list[ValidationIssue]:
        if isinstance(value, ExpenseCategory):
            return []
        if isinstance(value, str):
            try:
                ExpenseCategory(value)
                return []
            except ValueError:
                pass
        allowed = ", ".join(c.value for c in ExpenseCategory)
        return [ValidationIssue(
            field="category",
            issue_type="invalid_value",
            message=f"Unknown category: {value!r}. Allowed: {allowed}",
        )]

    def _check_note(self, value: Any) -> list[ValidationIssue]:
        if not isinstance(value, str):
            return [ValidationIssue(
                field="note",
                issue_type="invalid_type",
                message="Note must be text",
            )]
        if self._require_note and not value.strip():
            return [ValidationIssue(
                field="note",
                issue_type="missing",
                message="A note is required",
            )]
        return []

    def _check_fields(self, fields: Mapping[str, Any]) -> list[ValidationIssue]:
        issues = []
        for name, value in fields.items():
            if name == "amount":
                issues.extend(self._check_amount(value))
            elif name == "category":
                issues.extend(self._check_category(value))
            elif name == "note":
                issues.extend(self._check_note(value))
            elif name in IMMUTABLE_FIELDS:
                issues.append(ValidationIssue(
                    field=name,
                    issue_type="immutable",
                    message=f"{name} cannot be changed",
                ))
            else:
                issues.append(ValidationIssue(
                    field=name,
                    issue_type="unknown_field",
                    message=f"Unknown field: {name}",
                ))
        return issues

    def validate_new(self, fields: Mapping[str, Any]) -> ValidationResult:
        """
        Validate the fields of an expense about to be created.

        A missing note counts as an empty one.
        """
        issues = []
        for name in ("amount", "category"):
            if name not in fields:
                issues.append(ValidationIssue(
                    field=name,
                    issue_type="missing",
                    message=f"{name.capitalize()} is required",
                ))

        candidate = dict(fields)
        candidate.setdefault("note", "")
        issues.extend(self._check_fields(candidate))

        return ValidationResult(
            is_valid=not any(issue.severity == "error" for issue in issues),
            issues=issues,
        )

    def validate_changes(self, changes: Mapping[str, Any]) -> ValidationResult:
        """Validate a partial edit; only the supplied fields are checked."""
        issues = self._check_fields(changes)
        return ValidationResult(
            is_valid=not any(issue.severity == "error" for issue in issues),
            issues=issues,
        )

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Generate a short message for the UI.
        """
        if result.is_valid:
            return "✅ Looks good."

        lines = ["❌ Please fix the following:"]
        for issue in result.issues:
            if issue.severity == "error":
                lines.append(f"   • {issue.message}")
        return "\n".join(lines)
