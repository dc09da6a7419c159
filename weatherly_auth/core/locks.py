"""
Critical sections for read-modify-write sequences on a store.

Registration (duplicate check then insert) and reset redemption (token scan
then update) must not interleave. In-process callers share a
``threading.RLock``; file-backed stores additionally take a lock file so a
second process using the same data directory waits its turn.
"""

from __future__ import annotations

import os
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from ..utils.exceptions import StorageUnavailable
from ..utils.logger import get_logger

logger = get_logger(__name__)

LOCK_TIMEOUT_SECONDS = 30
LOCK_POLL_INTERVAL = 0.05


def _lock_path(locks_dir: Path, key: str) -> Path:
    safe = "".join(c if c.isalnum() or c in "-_" else "_" for c in key)
    locks_dir.mkdir(parents=True, exist_ok=True)
    return locks_dir / f"{safe}.lock"


def _pid_alive(pid: int) -> bool:
    if pid <= 0:
        return True
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except OSError:
        # EPERM: the process exists under another user
        return True
    return True


def _is_stale(path: Path, max_age_seconds: float) -> bool:
    """
    A lock file is stale once its owner process is gone. Files without an
    owner PID (crash before the write) or on platforms without signal 0 go
    stale once older than max_age_seconds.
    """
    try:
        content = path.read_text(encoding="utf-8").strip()
        age = time.time() - path.stat().st_mtime
    except (OSError, UnicodeDecodeError):
        return False
    if content.isdigit() and os.name == "posix":
        return not _pid_alive(int(content))
    return age > max_age_seconds


@contextmanager
def acquire_file_lock(
    locks_dir: Path, key: str, timeout_seconds: float = LOCK_TIMEOUT_SECONDS
) -> Generator[None, None, None]:
    """
    Acquire a named lock file under ``locks_dir``.

    Blocks until acquired or raises StorageUnavailable after the timeout.
    A lock left behind by a dead process is removed and acquisition retried.
    """
    try:
        path = _lock_path(locks_dir, key)
    except OSError as e:
        raise StorageUnavailable(f"Cannot create lock directory {locks_dir}: {e}") from e

    start = time.monotonic()
    while True:
        try:
            fd = os.open(str(path), os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            if _is_stale(path, timeout_seconds):
                logger.warning("Breaking stale lock", key=key)
                try:
                    path.unlink()
                except FileNotFoundError:
                    pass
                except OSError as e:
                    raise StorageUnavailable(f"Cannot remove stale lock {path}: {e}") from e
                continue
            if (time.monotonic() - start) >= timeout_seconds:
                logger.warning("Lock timeout", key=key, timeout_seconds=timeout_seconds)
                raise StorageUnavailable(
                    f"Could not acquire lock {key} within {timeout_seconds}s"
                )
            time.sleep(LOCK_POLL_INTERVAL)
            continue
        except OSError as e:
            raise StorageUnavailable(f"Cannot create lock file {path}: {e}") from e
        try:
            os.write(fd, str(os.getpid()).encode())
        finally:
            os.close(fd)
        break

    try:
        yield
    finally:
        try:
            path.unlink()
        except FileNotFoundError:
            pass


class KeyedLocks:
    """Process-local re-entrant locks, one per key."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict = {}

    def get(self, key: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock
