"""
Core Data Models for Expense Tracker

These models define the schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Round-trip through the persisted JSON payload unchanged

DESIGN DECISION: The persisted payload uses camelCase (`createdAt`) so
existing on-device data keeps loading. Python code uses snake_case and
pydantic aliases bridge the two.
"""

import math
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class ExpenseCategory(str, Enum):
    """
    Supported expense categories.

    DESIGN DECISION: A closed set keeps per-category totals meaningful.
    Anything that doesn't match on import lands in OTHERS.
    """
    FOOD = "food"
    TRANSPORTATION = "transportation"
    SHOPPING = "shopping"
    NECESSITIES = "necessities"
    GROCERIES = "groceries"
    OTHERS = "others"

    @property
    def label(self) -> str:
        """Short display name."""
        return _CATEGORY_LABELS[self]

    @classmethod
    def match(cls, value: Optional[str]) -> "ExpenseCategory":
        """
        Case-insensitive lookup that never fails.

        Unknown or empty values map to the fallback category.
        """
        if value is None:
            return cls.OTHERS
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.OTHERS


_CATEGORY_LABELS = {
    ExpenseCategory.FOOD: "Food",
    ExpenseCategory.TRANSPORTATION: "Transport",
    ExpenseCategory.SHOPPING: "Shopping",
    ExpenseCategory.NECESSITIES: "Necessities",
    ExpenseCategory.GROCERIES: "Groceries",
    ExpenseCategory.OTHERS: "Others",
}


class Period(str, Enum):
    """Bucket size for the period chart."""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


# =============================================================================
# CORE EXPENSE MODEL
# =============================================================================

class Expense(BaseModel):
    """
    A single logged expense.

    `id` and `created_at` are assigned by the store and never change.
    Only amount, category and note can be edited.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque unique identifier"
    )
    amount: int = Field(
        ...,
        gt=0,
        description="Amount in whole currency units"
    )
    category: ExpenseCategory = Field(
        ...,
        description="Expense category"
    )
    note: str = Field(
        default="",
        description="Free-form note"
    )
    created_at: datetime = Field(
        ...,
        alias="createdAt",
        description="When the expense was recorded (UTC)"
    )

    @field_validator('amount', mode='before')
    @classmethod
    def round_legacy_amount(cls, v):
        """Older payloads stored fractional amounts; round them half up."""
        if isinstance(v, float) and math.isfinite(v):
            return math.floor(v + 0.5)
        return v

    @field_validator('note', mode='before')
    @classmethod
    def default_missing_note(cls, v):
        """Older payloads stored null or omitted the note entirely."""
        return "" if v is None else v

    @field_validator('created_at')
    @classmethod
    def normalize_timezone(cls, v: datetime) -> datetime:
        """Store every timestamp in UTC; naive values are taken as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    def to_storage_dict(self) -> dict:
        """Serialize to the persisted JSON shape."""
        return self.model_dump(mode="json", by_alias=True)


class ExpenseCreate(BaseModel):
    """Fields supplied by the user when adding an expense."""
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: int = Field(..., gt=0)
    category: ExpenseCategory
    note: str = ""


class ExpenseUpdate(BaseModel):
    """
    Partial edit of an existing expense.

    Only fields that were explicitly set are applied.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: Optional[int] = Field(default=None, gt=0)
    category: Optional[ExpenseCategory] = None
    note: Optional[str] = None


class ImportRow(BaseModel):
    """One normalized row decoded from CSV text."""

    date: datetime = Field(
        ...,
        description="Local noon on the row's calendar day"
    )
    category: ExpenseCategory
    note: str
    amount: int = Field(..., gt=0)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'immutable')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """Result of validating a set of expense fields."""

    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    def summary(self) -> str:
        """All error messages on one line."""
        return "; ".join(
            issue.message for issue in self.issues if issue.severity == "error"
        )


# =============================================================================
# VIEW MODELS (display-ready groupings)
# =============================================================================

class DayGroup(BaseModel):
    """Expenses that share a local calendar day."""

    day: date
    label: str
    total: int
    expenses: list[Expense] = Field(default_factory=list)


class PeriodGroup(BaseModel):
    """Expenses that share a day, week or month, with per-category totals."""

    period: Period
    start: date = Field(
        ...,
        description="First day of the bucket (Sunday for weeks)"
    )
    label: str
    total: int
    count: int
    by_category: dict[ExpenseCategory, int] = Field(default_factory=dict)


class CategorySegment(BaseModel):
    """One segment of a stacked bar."""

    category: ExpenseCategory
    amount: int
    share: float = Field(..., ge=0.0, le=1.0)
    width: float = Field(..., ge=0.0, le=1.0)


class ExpenseSummary(BaseModel):
    """Totals over an arbitrary list of expenses."""

    total: int = 0
    count: int = 0
    by_category: dict[ExpenseCategory, int] = Field(default_factory=dict)
