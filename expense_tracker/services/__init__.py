"""Services package."""

from expense_tracker.services.storage import (
    DuplicateError,
    InMemoryStorage,
    JsonFileStorage,
    KeyValueStorage,
    StorageError,
    StorageUnavailableError,
)

__all__ = [
    # Storage services
    "DuplicateError",
    "InMemoryStorage",
    "JsonFileStorage",
    "KeyValueStorage",
    "StorageError",
    "StorageUnavailableError",
]
