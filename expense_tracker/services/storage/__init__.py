"""
Storage Services Package

Provides the abstract key-value interface and its implementations.
The JSON file backend is used on-device; the in-memory backend in tests.
"""

from expense_tracker.services.storage.interface import (
    DuplicateError,
    KeyValueStorage,
    StorageError,
    StorageUnavailableError,
)
from expense_tracker.services.storage.local import (
    InMemoryStorage,
    JsonFileStorage,
)

__all__ = [
    # Interfaces
    "KeyValueStorage",
    # Exceptions
    "DuplicateError",
    "StorageError",
    "StorageUnavailableError",
    # Implementations
    "InMemoryStorage",
    "JsonFileStorage",
]
