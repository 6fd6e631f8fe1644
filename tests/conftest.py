"""
Shared fixtures for Expense Tracker tests.

Test strategy:
1. Unit tests for models, validator, codec and views
2. Store and flow tests against in-memory storage
3. Deterministic clock and ids; no real user files touched
"""

from datetime import datetime, timedelta, timezone
from itertools import count

import pytest

from expense_tracker.services.storage import InMemoryStorage
from expense_tracker.store import ExpenseStore
from expense_tracker.validation import ExpenseValidator


STORAGE_KEY = "test_expenses"


class FakeClock:
    """Returns a fixed instant, advanced one minute per call."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(minutes=1)
        return current


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def id_factory():
    counter = count(1)
    return lambda: f"exp-{next(counter)}"


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def store(storage, clock, id_factory):
    return ExpenseStore(
        storage,
        key=STORAGE_KEY,
        validator=ExpenseValidator(require_note=False),
        clock=clock,
        id_factory=id_factory,
    )
