"""
Tests for the orchestrator flows.

Flows run against in-memory storage; audit events are captured by a
recording logger instead of being written out.
"""

import pytest
from datetime import date, timezone

from expense_tracker.audit import AuditLogger
from expense_tracker.codec import CsvDecodeError
from expense_tracker.models.audit import AuditEventType
from expense_tracker.models.expense import ExpenseCategory, ExpenseUpdate, Period
from expense_tracker.orchestrator import (
    CsvExportFlow,
    CsvImportFlow,
    ExpenseFlow,
    NoValidRowsError,
    create_app_components,
)
from expense_tracker.services.storage import InMemoryStorage
from expense_tracker.validation import ExpenseValidationError


UTC = timezone.utc


class RecordingAuditLogger(AuditLogger):
    """Keeps events in memory."""

    def __init__(self):
        super().__init__()
        self.events = []

    def log(self, event):
        self.events.append(event)
        return True

    @property
    def types(self):
        return [e.event_type for e in self.events]


@pytest.fixture
def audit():
    return RecordingAuditLogger()


@pytest.fixture
def flow(store, audit):
    return ExpenseFlow(store, audit_logger=audit, tz=UTC)


@pytest.fixture
def import_flow(store, audit):
    return CsvImportFlow(store, audit_logger=audit, tz=UTC)


class TestExpenseFlow:
    """Tests for add / edit / delete."""

    def test_add_strips_note_and_audits(self, flow, audit):
        expense = flow.add_expense(80, "food", "  Lunch  ")

        assert expense.note == "Lunch"
        assert flow.list_expenses() == [expense]
        assert audit.types == [AuditEventType.EXPENSE_ADDED]

    def test_add_invalid_audits_and_raises(self, flow, audit):
        with pytest.raises(ExpenseValidationError):
            flow.add_expense(0, ExpenseCategory.FOOD)

        assert flow.list_expenses() == []
        assert audit.types == [AuditEventType.VALIDATION_FAILED]

    def test_update_existing(self, flow, audit):
        expense = flow.add_expense(80, "food", "Lunch")

        updated = flow.update_expense(expense.id, ExpenseUpdate(amount=5))

        assert updated.amount == 5
        assert flow.get_expense(expense.id) == updated
        assert audit.types[-1] == AuditEventType.EXPENSE_UPDATED
        assert audit.events[-1].details["changed_fields"] == ["amount"]

    def test_update_missing_returns_none(self, flow, audit):
        assert flow.update_expense("gone", {"amount": 5}) is None
        assert audit.types == [AuditEventType.EXPENSE_NOT_FOUND]

    def test_update_invalid_raises(self, flow, audit):
        expense = flow.add_expense(80, "food")
        with pytest.raises(ExpenseValidationError):
            flow.update_expense(expense.id, {"category": "travel"})
        assert audit.types[-1] == AuditEventType.VALIDATION_FAILED

    def test_delete(self, flow, audit):
        expense = flow.add_expense(80, "food")

        assert flow.delete_expense(expense.id) is True
        assert flow.delete_expense(expense.id) is False
        assert flow.list_expenses() == []
        assert audit.types[-2:] == [
            AuditEventType.EXPENSE_DELETED,
            AuditEventType.EXPENSE_NOT_FOUND,
        ]

    def test_works_without_audit_logger(self, store):
        flow = ExpenseFlow(store)
        expense = flow.add_expense(3, "others")
        assert flow.delete_expense(expense.id) is True


class TestFlowViews:
    """Tests for the read-side helpers."""

    def test_days_and_periods(self, flow):
        flow.add_expense(10, "food")
        flow.add_expense(5, "shopping")

        [day] = flow.days(today=date(2024, 6, 1))
        assert day.label == "Today"
        assert day.total == 15

        [month] = flow.periods(Period.MONTH)
        assert month.label == "Jun 2024"
        assert month.by_category[ExpenseCategory.SHOPPING] == 5

    def test_period_limit_applied(self, store):
        flow = ExpenseFlow(store, period_limit=2, tz=UTC)
        CsvImportFlow(store, tz=UTC).import_text(
            "2024-05-01,food,A,1\n2024-05-02,food,B,1\n2024-05-03,food,C,1"
        )
        assert [g.start for g in flow.periods("day")] == [date(2024, 5, 3), date(2024, 5, 2)]

    def test_summary(self, flow):
        flow.add_expense(10, "food")
        flow.add_expense(5, "food")
        summary = flow.summary()
        assert (summary.total, summary.count) == (15, 2)


class TestCsvImportFlow:
    """Tests for the paste import."""

    def test_import_reports_counts(self, import_flow, store, audit):
        text = "date,category,note,amount\n2024-05-01,food,Tea,3\nbad\n2024-05-02,food,Bun,2"

        outcome = import_flow.import_text(text)

        assert outcome.imported == 2
        assert outcome.skipped == 1
        assert outcome.message == "Imported 2 expenses. Skipped 1 invalid line."
        assert [e.note for e in store.list()] == ["Bun", "Tea"]
        assert audit.types == [AuditEventType.EXPENSES_IMPORTED]

    def test_single_row_message(self, import_flow):
        outcome = import_flow.import_text("2024-05-01,food,Tea,3")
        assert outcome.message == "Imported 1 expense."

    def test_no_valid_rows_rejected(self, import_flow, store, audit):
        with pytest.raises(NoValidRowsError, match="No valid rows found"):
            import_flow.import_text("garbage,garbage")

        assert store.list() == []
        assert audit.types == [AuditEventType.IMPORT_REJECTED]

    def test_header_only_rejected(self, import_flow):
        with pytest.raises(NoValidRowsError):
            import_flow.import_text("date,category,note,amount")

    def test_non_text_raises(self, import_flow, audit):
        with pytest.raises(CsvDecodeError):
            import_flow.import_text(None)
        assert audit.types == [AuditEventType.SYSTEM_ERROR]

    def test_imported_rows_sorted_among_existing(self, import_flow, store, flow):
        flow.add_expense(9, "food", "Now")
        import_flow.import_text("2024-05-01,food,Old,3\n2024-05-20,food,Newer,2")
        assert [e.note for e in store.list()] == ["Now", "Newer", "Old"]

    def test_custom_placeholder(self, store):
        flow = CsvImportFlow(store, note_placeholder="From bank", tz=UTC)
        flow.import_text("2024-05-01,food,,3")
        assert store.list()[0].note == "From bank"


class TestCsvExportFlow:
    """Tests for export."""

    def test_export_stored_list(self, store, flow, audit):
        flow.add_expense(80, "food", "Lunch, with team")
        export_flow = CsvExportFlow(store, audit_logger=audit)

        text = export_flow.export()

        assert text == 'date,category,note,amount\n2024-06-01,food,"Lunch, with team",80'
        assert audit.types[-1] == AuditEventType.CSV_EXPORTED

    def test_export_then_import_elsewhere(self, store, flow):
        flow.add_expense(12, "groceries", "Veg")
        text = CsvExportFlow(store).export()

        _, other_import, _ = create_app_components(storage=InMemoryStorage(), tz=UTC)
        outcome = other_import.import_text(text)

        assert outcome.imported == 1


class TestCreateAppComponents:
    """Tests for the component factory."""

    def test_components_share_one_store(self):
        storage = InMemoryStorage()
        expense_flow, import_flow, export_flow = create_app_components(storage=storage, tz=UTC)

        expense_flow.add_expense(4, "food", "Tea")
        import_flow.import_text("2024-01-15,food,Bun,2")

        assert len(expense_flow.list_expenses()) == 2
        assert export_flow.export().count("\n") == 2

    def test_uses_configured_storage_key(self, monkeypatch):
        from expense_tracker.config import get_settings

        monkeypatch.setenv("EXPENSE_STORAGE_KEY", "custom_key")
        get_settings.cache_clear()
        try:
            storage = InMemoryStorage()
            expense_flow, _, _ = create_app_components(storage=storage, tz=UTC)
            expense_flow.add_expense(4, "food")
            assert storage.get_item("custom_key") is not None
        finally:
            get_settings.cache_clear()

    def test_default_storage_is_json_file(self, monkeypatch, tmp_path):
        from expense_tracker.config import get_settings

        path = tmp_path / "expenses.json"
        monkeypatch.setenv("EXPENSE_STORAGE_PATH", str(path))
        get_settings.cache_clear()
        try:
            expense_flow, _, _ = create_app_components(tz=UTC)
            expense_flow.add_expense(4, "food")
            assert path.exists()
        finally:
            get_settings.cache_clear()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
