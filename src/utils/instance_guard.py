"""
Single-instance guard for command-line passes.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO


class InstanceLockError(RuntimeError):
    """Raised when another instance is already running."""


@dataclass(frozen=True)
class InstanceLock:
    """Holds the lock file handle to keep the lock alive."""

    handle: TextIO
    path: Path

    def release(self) -> None:
        self.handle.close()


def _lock_file(handle: TextIO) -> None:
    if os.name == "nt":
        import msvcrt

        try:
            handle.seek(0)
            msvcrt.locking(handle.fileno(), msvcrt.LK_NBLCK, 1)
        except OSError as exc:
            raise InstanceLockError("Another instance is already running.") from exc
    else:
        import fcntl

        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError as exc:
            raise InstanceLockError("Another instance is already running.") from exc


def _write_lock_info(handle: TextIO) -> None:
    handle.seek(0)
    handle.truncate()
    info = [
        f"pid={os.getpid()}",
        f"argv={' '.join(sys.argv)}",
    ]
    handle.write("\n".join(info))
    handle.flush()


def acquire_instance_lock(lock_path: Path) -> InstanceLock:
    """Acquire a non-blocking instance lock or raise InstanceLockError."""
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    handle = lock_path.open("a+", encoding="utf-8")
    try:
        _lock_file(handle)
        _write_lock_info(handle)
    except Exception:
        handle.close()
        raise
    return InstanceLock(handle=handle, path=lock_path)
