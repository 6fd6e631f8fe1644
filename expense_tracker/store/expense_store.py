"""
Expense Record Store

The single owner of the persisted expense list. Every add, edit,
delete and import goes through here, and every view reads from here.

DESIGN DECISION: Each operation loads the full list, changes it in
memory and writes it back in full. There is no cache between calls,
so the next list() always sees the last write.

Clock and id generation are injected so that record creation is
deterministic in tests.
"""

import json
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Union
from uuid import uuid4

import structlog
from pydantic import BaseModel, ValidationError

from expense_tracker.config import get_settings
from expense_tracker.models.expense import (
    Expense,
    ExpenseCreate,
    ExpenseUpdate,
    ImportRow,
)
from expense_tracker.services.storage import (
    DuplicateError,
    KeyValueStorage,
    StorageError,
)
from expense_tracker.validation import ExpenseValidationError, ExpenseValidator


logger = structlog.get_logger(__name__)

MAX_ID_ATTEMPTS = 5


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_expense_id() -> str:
    return str(uuid4())


def _field_dict(fields: Union[BaseModel, Mapping[str, Any]]) -> dict[str, Any]:
    """
    Turn a model or mapping into the fields that were actually supplied.

    Text values are stripped, as the input models do.
    """
    if isinstance(fields, BaseModel):
        return fields.model_dump(exclude_none=True)
    return {
        name: value.strip() if isinstance(value, str) else value
        for name, value in fields.items()
        if value is not None
    }


class ExpenseStore:
    """
    Persisted list of expenses, most recent first.

    Read failures are treated as "no expenses yet"; write failures
    propagate as StorageError.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        key: Optional[str] = None,
        validator: Optional[ExpenseValidator] = None,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = new_expense_id,
    ):
        self._storage = storage
        self._key = key or get_settings().storage.key
        self._validator = validator or ExpenseValidator()
        self._clock = clock
        self._id_factory = id_factory

    @property
    def key(self) -> str:
        return self._key

    # -------------------------------------------------------------------------
    # Raw access
    # -------------------------------------------------------------------------

    def _load(self) -> tuple[list[Expense], list[Any]]:
        """
        Read the stored list as (expenses, unreadable raw entries).

        Entries that don't form a valid expense are logged and handed
        back untouched, so writes can carry them along.
        """
        try:
            raw = self._storage.get_item(self._key)
        except StorageError as e:
            logger.warning("expense_storage_unreadable", key=self._key, error=str(e))
            return [], []

        if not raw:
            return [], []

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("expense_payload_corrupt", key=self._key, error=str(e))
            return [], []

        if not isinstance(data, list):
            logger.warning(
                "expense_payload_corrupt",
                key=self._key,
                error=f"expected a list, got {type(data).__name__}",
            )
            return [], []

        expenses = []
        unreadable = []
        for index, entry in enumerate(data):
            try:
                expenses.append(Expense.model_validate(entry))
            except ValidationError as e:
                logger.warning(
                    "expense_record_unreadable",
                    key=self._key,
                    index=index,
                    error_count=e.error_count(),
                )
                unreadable.append(entry)
        return expenses, unreadable

    def _save(self, expenses: Iterable[Expense], unreadable: Sequence[Any] = ()) -> None:
        payload = json.dumps(
            [expense.to_storage_dict() for expense in expenses] + [*unreadable],
            ensure_ascii=False,
        )
        self._storage.set_item(self._key, payload)

    def list(self) -> list[Expense]:
        """
        Return every stored expense in stored order.

        Never raises for missing or unreadable state. Entries that
        don't form a valid expense are left out; mutations keep them
        in storage as they were.
        """
        return self._load()[0]

    def replace_all(self, expenses: Iterable[Expense]) -> None:
        """Overwrite the stored list. The caller is responsible for validity."""
        self._save(expenses)

    def get(self, expense_id: str) -> Optional[Expense]:
        """Look up one expense by id."""
        for expense in self.list():
            if expense.id == expense_id:
                return expense
        return None

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    @staticmethod
    def _taken_ids(expenses: Sequence[Expense], unreadable: Sequence[Any]) -> set[str]:
        taken = {e.id for e in expenses}
        taken.update(
            entry["id"] for entry in unreadable
            if isinstance(entry, dict) and isinstance(entry.get("id"), str)
        )
        return taken

    def _new_id(self, taken: set[str]) -> str:
        for _ in range(MAX_ID_ATTEMPTS):
            candidate = self._id_factory()
            if candidate not in taken:
                taken.add(candidate)
                return candidate
        raise DuplicateError(
            f"Could not generate a unique expense id after {MAX_ID_ATTEMPTS} attempts"
        )

    def add(self, fields: Union[ExpenseCreate, Mapping[str, Any]]) -> Expense:
        """
        Create an expense stamped with a fresh id and the current time.

        The new expense goes to the front of the list.

        Raises:
            ExpenseValidationError: If the fields are invalid
        """
        values = _field_dict(fields)
        result = self._validator.validate_new(values)
        if not result.is_valid:
            raise ExpenseValidationError(result)

        expenses, unreadable = self._load()
        expense = Expense(
            id=self._new_id(self._taken_ids(expenses, unreadable)),
            amount=values["amount"],
            category=values["category"],
            note=values.get("note", ""),
            created_at=self._clock(),
        )
        self._save([expense, *expenses], unreadable)

        logger.debug("expense_added", expense_id=expense.id)
        return expense

    def update(
        self,
        expense_id: str,
        changes: Union[ExpenseUpdate, Mapping[str, Any]],
    ) -> Optional[Expense]:
        """
        Apply a partial edit to one expense.

        id and created_at are left untouched. Returns None, without
        writing anything, if no expense has this id.

        Raises:
            ExpenseValidationError: If the supplied fields are invalid
        """
        values = _field_dict(changes)
        result = self._validator.validate_changes(values)
        if not result.is_valid:
            raise ExpenseValidationError(result)

        expenses, unreadable = self._load()
        for index, existing in enumerate(expenses):
            if existing.id == expense_id:
                break
        else:
            return None

        merged = Expense.model_validate({**existing.model_dump(), **values})
        expenses[index] = merged
        self._save(expenses, unreadable)

        logger.debug("expense_updated", expense_id=expense_id, fields=sorted(values))
        return merged

    def delete(self, expense_id: str) -> bool:
        """Remove one expense. Returns whether anything was removed."""
        expenses, unreadable = self._load()
        remaining = [e for e in expenses if e.id != expense_id]
        if len(remaining) == len(expenses):
            return False

        self._save(remaining, unreadable)
        logger.debug("expense_deleted", expense_id=expense_id)
        return True

    def import_bulk(self, rows: Sequence[Union[ImportRow, Mapping[str, Any]]]) -> int:
        """
        Add one expense per row, keeping each row's own date.

        Imported dates are historical, so the merged list is fully
        re-sorted newest first. An empty input writes nothing.

        Returns:
            Number of expenses imported
        """
        if not rows:
            return 0

        parsed = [
            row if isinstance(row, ImportRow) else ImportRow.model_validate(row)
            for row in rows
        ]

        expenses, unreadable = self._load()
        taken = self._taken_ids(expenses, unreadable)
        imported = [
            Expense(
                id=self._new_id(taken),
                amount=row.amount,
                category=row.category,
                note=row.note,
                created_at=row.date,
            )
            for row in parsed
        ]

        merged = sorted(
            imported + expenses,
            key=lambda e: e.created_at,
            reverse=True,
        )
        self._save(merged, unreadable)

        logger.info("expenses_imported", count=len(imported), total=len(merged))
        return len(imported)
