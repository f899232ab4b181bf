"""Key-value backends for locally persisted drafts.

Backends store strings by key and raise ``StorageError`` on failure. The
draft store on top of them decides what to do with those failures.
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path

from automation_builder.errors import StorageError
from automation_builder.utils.validation import safe_storage_name

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Minimal string key-value interface."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``. Missing keys are not an error."""
        pass

    def keys(self) -> list[str]:
        """List stored keys, where the backend supports it."""
        return []


class MemoryKeyValueStore(KeyValueStore):
    """In-process store, used by tests and the ``memory`` draft backend."""

    def __init__(self, max_value_bytes: int | None = None):
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()
        self.max_value_bytes = max_value_bytes

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.max_value_bytes is not None and len(value.encode()) > self.max_value_bytes:
            raise StorageError(f"Quota exceeded for {key}")
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._data)


class FileKeyValueStore(KeyValueStore):
    """One JSON file per key inside a directory.

    Writes go to a temporary file that is renamed into place, so a crash
    never leaves a half-written draft behind.
    """

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{safe_storage_name(key)}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp_name = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Failed to write {path}: {e}") from e
        logger.debug(f"Saved {key} to {path}")

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to delete {path}: {e}") from e

    def keys(self) -> list[str]:
        if not self.directory.exists():
            return []
        return sorted(p.stem for p in self.directory.glob("*.json"))


def create_backend(kind: str, directory: Path | str | None = None) -> KeyValueStore:
    """Create a backend by name (``file`` or ``memory``)."""
    if kind == "memory":
        return MemoryKeyValueStore()
    if kind == "file":
        if directory is None:
            raise ValueError("File backend requires a directory")
        return FileKeyValueStore(directory)
    raise ValueError(f"Unknown draft backend: {kind}")
