"""
Abstract Storage Interface

DESIGN DECISION: The expense store talks to a tiny key-value port.
This allows us to:
1. Keep data in a local JSON file on the device
2. Use in-memory storage for testing
3. Swap in another backend without touching the store

The interface is intentionally minimal - read a text value, write a
text value. Serialization belongs to the expense store, not here.
"""

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStorage(ABC):
    """
    Abstract interface for whole-value text storage.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """
        Read the value stored under a key.

        Args:
            key: Storage key

        Returns:
            The stored text, or None if the key has never been written

        Raises:
            StorageUnavailableError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """
        Replace the value stored under a key.

        Args:
            key: Storage key
            value: Text to store

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def remove_item(self, key: str) -> bool:
        """
        Remove a key.

        Returns:
            True if the key existed
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageUnavailableError(StorageError):
    """The storage backend could not be reached or read."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a record whose id is already taken."""
    pass
