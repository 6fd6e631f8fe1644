"""
Local Storage Implementations

DESIGN DECISION: Expenses live on the device, in a single JSON file
that maps storage keys to text values (the same shape as a browser's
localStorage). The file is small, so every write rewrites it in full.

TRADEOFFS:
- No locking against a second process writing the same file
- No partial updates (fine for a personal log)

Writes go to a temp file that is then renamed over the target, so a
crash mid-write leaves the previous contents intact.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

import structlog
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from expense_tracker.services.storage.interface import (
    KeyValueStorage,
    StorageError,
    StorageUnavailableError,
)


logger = structlog.get_logger(__name__)


class InMemoryStorage(KeyValueStorage):
    """Dictionary-backed storage for tests and throwaway sessions."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> bool:
        return self._items.pop(key, None) is not None


class JsonFileStorage(KeyValueStorage):
    """
    JSON-file implementation of key-value storage.

    The whole file is read on every get and rewritten on every set.
    Failed writes are retried with exponential backoff.
    """

    def __init__(
        self,
        path: Union[str, Path],
        retry_attempts: int = 3,
    ):
        self._path = Path(path).expanduser()
        self._retry_attempts = retry_attempts

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> dict[str, str]:
        """Load the key-value mapping from disk."""
        if not self._path.exists():
            return {}

        try:
            raw = self._path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StorageUnavailableError(
                f"Failed to read storage file {self._path}: {e}"
            ) from e

        if not raw.strip():
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageUnavailableError(
                f"Storage file {self._path} is not valid JSON: {e}"
            ) from e

        if not isinstance(data, dict):
            raise StorageUnavailableError(
                f"Storage file {self._path} does not hold a JSON object"
            )

        return data

    def _write_atomic(self, content: str) -> None:
        """Write content to a sibling temp file, then rename it into place."""
        self._path.parent.mkdir(parents=True, exist_ok=True)

        fd, temp_name = tempfile.mkstemp(
            prefix=self._path.name + "-",
            suffix=".tmp",
            dir=self._path.parent,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tf:
                tf.write(content)
                tf.flush()
                os.fsync(tf.fileno())
            os.replace(temp_name, self._path)
        except OSError:
            if os.path.exists(temp_name):
                os.unlink(temp_name)
            raise

    def _write_all(self, items: dict[str, str]) -> None:
        content = json.dumps(items, ensure_ascii=False)
        try:
            for attempt in Retrying(
                stop=stop_after_attempt(self._retry_attempts),
                wait=wait_exponential(multiplier=0.1, max=2),
                retry=retry_if_exception_type(OSError),
                reraise=True,
            ):
                with attempt:
                    self._write_atomic(content)
        except OSError as e:
            raise StorageError(f"Failed to write storage file {self._path}: {e}") from e

    def get_item(self, key: str) -> Optional[str]:
        value = self._read_all().get(key)
        if value is not None and not isinstance(value, str):
            raise StorageUnavailableError(
                f"Value stored under {key!r} is not text"
            )
        return value

    def set_item(self, key: str, value: str) -> None:
        try:
            items = self._read_all()
        except StorageUnavailableError as e:
            # Unreadable file: start over rather than refuse every write
            logger.warning(
                "storage_file_reset",
                path=str(self._path),
                error=str(e),
            )
            items = {}

        items[key] = value
        self._write_all(items)

    def remove_item(self, key: str) -> bool:
        items = self._read_all()
        if key not in items:
            return False
        del items[key]
        self._write_all(items)
        return True
