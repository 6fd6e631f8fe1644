"""
Main Orchestrator for Expense Tracker

This module ties the components together and defines the flows the UI
calls:
1. Expense editing (add / edit / delete, then re-read)
2. CSV import (paste -> decode -> reject if empty -> bulk import)
3. CSV export (stored list -> CSV text)

DESIGN DECISION: The UI never talks to the store or codec directly.
The flows validate, audit every change and hand back neutral values
(None / False / a count) for the expected failure cases, so the page
only has to render them.
"""

from datetime import date, tzinfo
from typing import Any, Mapping, Optional, Union
from uuid import UUID

from pydantic import BaseModel

from expense_tracker.audit import AuditLogger, create_correlation_id
from expense_tracker.codec import CsvDecodeError, decode_csv, export_to_csv
from expense_tracker.config import Settings, get_settings
from expense_tracker.models.expense import (
    DayGroup,
    Expense,
    ExpenseCategory,
    ExpenseSummary,
    ExpenseUpdate,
    Period,
    PeriodGroup,
)
from expense_tracker.services.storage import JsonFileStorage, KeyValueStorage
from expense_tracker.store import ExpenseStore
from expense_tracker.validation import ExpenseValidationError, ExpenseValidator
from expense_tracker.views import group_by_day, group_by_period, summarize


class NoValidRowsError(ValueError):
    """A CSV paste produced no importable rows."""
    pass


class ImportOutcome(BaseModel):
    """What a CSV import did, for user feedback."""

    imported: int
    skipped: int
    message: str


def _issue_dicts(error: ExpenseValidationError) -> list[dict]:
    return [
        {"field": i.field, "type": i.issue_type, "message": i.message}
        for i in error.result.issues
    ]


class ExpenseFlow:
    """
    Orchestrates everyday expense editing and the read-side views.

    Every mutation is followed by the caller re-reading list_expenses();
    return values are for feedback only.
    """

    def __init__(
        self,
        store: ExpenseStore,
        audit_logger: Optional[AuditLogger] = None,
        period_limit: int = 14,
        tz: Optional[tzinfo] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._period_limit = period_limit
        self._tz = tz

    @property
    def store(self) -> ExpenseStore:
        return self._store

    def list_expenses(self) -> list[Expense]:
        """Canonical list, most recent first."""
        return self._store.list()

    def get_expense(self, expense_id: str) -> Optional[Expense]:
        return self._store.get(expense_id)

    def add_expense(
        self,
        amount: int,
        category: Union[ExpenseCategory, str],
        note: str = "",
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Record a new expense.

        Raises:
            ExpenseValidationError: If amount, category or note are invalid
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            expense = self._store.add({
                "amount": amount,
                "category": category,
                "note": note.strip() if isinstance(note, str) else note,
            })
        except ExpenseValidationError as e:
            if self._audit_logger:
                self._audit_logger.log_validation_failed(
                    operation="add",
                    issues=_issue_dicts(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            self._audit_logger.log_expense_added(
                expense_id=expense.id,
                amount=expense.amount,
                category=expense.category.value,
                correlation_id=correlation_id,
            )
        return expense

    def update_expense(
        self,
        expense_id: str,
        changes: Union[ExpenseUpdate, Mapping[str, Any]],
        correlation_id: Optional[UUID] = None,
    ) -> Optional[Expense]:
        """
        Edit amount, category and/or note of one expense.

        Returns None if the expense no longer exists.

        Raises:
            ExpenseValidationError: If a supplied field is invalid
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            updated = self._store.update(expense_id, changes)
        except ExpenseValidationError as e:
            if self._audit_logger:
                self._audit_logger.log_validation_failed(
                    operation="update",
                    issues=_issue_dicts(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            if updated is None:
                self._audit_logger.log_expense_not_found(
                    expense_id=expense_id,
                    operation="update",
                    correlation_id=correlation_id,
                )
            else:
                if isinstance(changes, BaseModel):
                    changed = sorted(changes.model_dump(exclude_none=True))
                else:
                    changed = sorted(k for k, v in changes.items() if v is not None)
                self._audit_logger.log_expense_updated(
                    expense_id=expense_id,
                    changed_fields=changed,
                    correlation_id=correlation_id,
                )
        return updated

    def delete_expense(
        self,
        expense_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Delete one expense; False if it was already gone."""
        correlation_id = correlation_id or create_correlation_id()

        deleted = self._store.delete(expense_id)

        if self._audit_logger:
            if deleted:
                self._audit_logger.log_expense_deleted(
                    expense_id=expense_id,
                    correlation_id=correlation_id,
                )
            else:
                self._audit_logger.log_expense_not_found(
                    expense_id=expense_id,
                    operation="delete",
                    correlation_id=correlation_id,
                )
        return deleted

    def days(self, today: Optional[date] = None) -> list[DayGroup]:
        """Stored expenses grouped by local day."""
        return group_by_day(self._store.list(), today=today, tz=self._tz)

    def periods(self, period: Union[Period, str]) -> list[PeriodGroup]:
        """Stored expenses grouped by day, week or month for the chart."""
        return group_by_period(
            self._store.list(),
            period,
            tz=self._tz,
            limit=self._period_limit,
        )

    def summary(self) -> ExpenseSummary:
        return summarize(self._store.list())


class CsvImportFlow:
    """
    Orchestrates a CSV paste import.

    Flow:
    1. Decode the pasted text (bad rows are dropped)
    2. Reject the paste if nothing survived
    3. Bulk import the rows through the store
    """

    def __init__(
        self,
        store: ExpenseStore,
        audit_logger: Optional[AuditLogger] = None,
        note_placeholder: str = "Imported",
        tz: Optional[tzinfo] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._note_placeholder = note_placeholder
        self._tz = tz

    def import_text(
        self,
        text: str,
        correlation_id: Optional[UUID] = None,
    ) -> ImportOutcome:
        """
        Import every valid row of a CSV paste.

        Raises:
            NoValidRowsError: If no row could be imported
            CsvDecodeError: If the text could not be read at all
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            decoded = decode_csv(
                text,
                tz=self._tz,
                note_placeholder=self._note_placeholder,
            )
        except CsvDecodeError as e:
            if self._audit_logger:
                self._audit_logger.log_error(
                    error_type="csv_decode",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if not decoded.rows:
            if self._audit_logger:
                self._audit_logger.log_import_rejected(
                    reason="no valid rows",
                    input_lines=len(text.splitlines()),
                    correlation_id=correlation_id,
                )
            raise NoValidRowsError(
                "No valid rows found. Expected columns: date, category, note, amount."
            )

        imported = self._store.import_bulk(decoded.rows)

        if self._audit_logger:
            self._audit_logger.log_expenses_imported(
                imported=imported,
                skipped_lines=decoded.skipped,
                correlation_id=correlation_id,
            )

        message = f"Imported {imported} expense{'s' if imported != 1 else ''}."
        if decoded.skipped:
            message += f" Skipped {decoded.skipped} invalid line{'s' if decoded.skipped != 1 else ''}."
        return ImportOutcome(imported=imported, skipped=decoded.skipped, message=message)


class CsvExportFlow:
    """Orchestrates a CSV export of the stored list."""

    def __init__(
        self,
        store: ExpenseStore,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger

    def export(self, correlation_id: Optional[UUID] = None) -> str:
        """CSV text of every stored expense, in stored order."""
        expenses = self._store.list()
        text = export_to_csv(expenses)

        if self._audit_logger:
            self._audit_logger.log_csv_exported(
                record_count=len(expenses),
                correlation_id=correlation_id or create_correlation_id(),
            )
        return text


def create_app_components(
    settings: Optional[Settings] = None,
    storage: Optional[KeyValueStorage] = None,
    tz: Optional[tzinfo] = None,
) -> tuple[ExpenseFlow, CsvImportFlow, CsvExportFlow]:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to use (defaults to the cached settings)
        storage: Storage backend. Defaults to the JSON file from settings;
                 pass InMemoryStorage() for tests.
        tz: Zone for day bucketing and imports (default: local zone)

    Returns:
        (expense_flow, import_flow, export_flow)
    """
    settings = settings or get_settings()
    app_settings = settings.app
    storage_settings = settings.storage

    if storage is None:
        storage = JsonFileStorage(
            storage_settings.path,
            retry_attempts=storage_settings.retry_attempts,
        )

    audit_logger = AuditLogger()
    store = ExpenseStore(
        storage,
        key=storage_settings.key,
        validator=ExpenseValidator(require_note=app_settings.require_note),
    )

    expense_flow = ExpenseFlow(
        store,
        audit_logger=audit_logger,
        period_limit=app_settings.period_bucket_limit,
        tz=tz,
    )
    import_flow = CsvImportFlow(
        store,
        audit_logger=audit_logger,
        note_placeholder=app_settings.import_note_placeholder,
        tz=tz,
    )
    export_flow = CsvExportFlow(store, audit_logger=audit_logger)

    return expense_flow, import_flow, export_flow
