"""
Key-value stores backing the engine.

Both backends hold string values under string keys (JSON documents in
practice), mirroring browser-style storage:

- MemoryStore: process-local dict, used in tests and embedded callers
- FileStore: one JSON document per key under a directory, written atomically

Every backend also exposes ``lock(key)``, a critical section for
read-modify-write sequences on that key.
"""

from __future__ import annotations

import shutil
import tempfile
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Generator, Optional

from ..core.locks import LOCK_TIMEOUT_SECONDS, KeyedLocks, acquire_file_lock
from ..utils.exceptions import StorageUnavailable


class KeyValueStore(ABC):
    """Minimal storage interface consumed by the engine."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None when the key is absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key; absent keys are ignored."""

    @abstractmethod
    def lock(self, key: str):
        """Context manager serialising read-modify-write on key."""


class MemoryStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._locks = KeyedLocks()

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    @contextmanager
    def lock(self, key: str) -> Generator[None, None, None]:
        with self._locks.get(key):
            yield


class FileStore(KeyValueStore):
    """Durable store: ``<root>/<key>.json`` per key."""

    def __init__(self, root: Path, lock_timeout_seconds: float = LOCK_TIMEOUT_SECONDS):
        self.root = Path(root)
        self.lock_timeout_seconds = lock_timeout_seconds
        self._locks = KeyedLocks()
        self._held = threading.local()

    def _path(self, key: str) -> Path:
        safe = "".join(c if c.isalnum() or c in "-_." else "_" for c in key)
        return self.root / f"{safe}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StorageUnavailable(f"Failed to read {path}: {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tf = tempfile.NamedTemporaryFile(
                mode="w", dir=str(path.parent), delete=False, encoding="utf-8"
            )
        except OSError as e:
            raise StorageUnavailable(f"Failed to write {path}: {e}") from e

        temp_path = Path(tf.name)
        try:
            with tf:
                tf.write(value)
            # Atomic move/replace
            shutil.move(str(temp_path), str(path))
        except (OSError, UnicodeError) as e:
            if temp_path.exists():
                temp_path.unlink()
            raise StorageUnavailable(f"Failed to write {path}: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageUnavailable(f"Failed to delete {key}: {e}") from e

    @contextmanager
    def lock(self, key: str) -> Generator[None, None, None]:
        held = getattr(self._held, "keys", None)
        if held is None:
            held = self._held.keys = {}
        with self._locks.get(key):
            # Re-entry from the same thread already owns the lock file
            if held.get(key):
                held[key] += 1
                try:
                    yield
                finally:
                    held[key] -= 1
                return
            with acquire_file_lock(self.root / ".locks", key, self.lock_timeout_seconds):
                held[key] = 1
                try:
                    yield
                finally:
                    held[key] = 0
