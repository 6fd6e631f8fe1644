"""Validation package."""

from expense_tracker.validation.validator import (
    EDITABLE_FIELDS,
    ExpenseValidationError,
    ExpenseValidator,
)

__all__ = ["EDITABLE_FIELDS", "ExpenseValidationError", "ExpenseValidator"]
