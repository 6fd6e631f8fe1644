"""Expense record store package."""

from expense_tracker.store.expense_store import ExpenseStore, new_expense_id, utc_now

__all__ = ["ExpenseStore", "new_expense_id", "utc_now"]
