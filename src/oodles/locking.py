"""Locking for the oodle collection and its backing files.

Two layers:

- ReadWriteLock guards the in-memory collection inside one process.
  Lookups share it; mutations hold it exclusively through the save.
- file_lock / atomic_write guard each oodle file on disk, so a save
  never leaves a half-written file behind.
"""

from __future__ import annotations

import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, TextIO

import portalocker


class ReadWriteLock:
    """Many readers or one writer. Waiting writers block new readers."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Generator[None, None, None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Generator[None, None, None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


def lock_path_for(path: Path) -> Path:
    """Sidecar lock file used for an oodle file."""
    return path.with_name(path.name + ".lock")


@contextmanager
def file_lock(path: Path, timeout: float = 10.0) -> Generator[None, None, None]:
    """Acquire an exclusive lock on an oodle file.

    Creates a .lock file alongside the target file.

    Raises:
        portalocker.LockException: If lock cannot be acquired
    """
    lock_path = lock_path_for(path)
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    lock_path.touch(exist_ok=True)

    with portalocker.Lock(lock_path, timeout=timeout):
        yield


@contextmanager
def atomic_write(path: Path, encoding: str = "utf-8") -> Generator[TextIO, None, None]:
    """Write a text file atomically, byte for byte.

    Newlines are written untranslated so the file matches the serialized
    text exactly on every platform.
    """
    tmp_path = path.with_name(path.name + ".tmp")
    path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with open(tmp_path, "w", encoding=encoding, newline="") as f:
            yield f
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        if tmp_path.exists():
            tmp_path.unlink()
        raise


@contextmanager
def locked_atomic_write(path: Path, encoding: str = "utf-8", timeout: float = 10.0) -> Generator[TextIO, None, None]:
    """Combine file lock with atomic write."""
    with file_lock(path, timeout=timeout):
        with atomic_write(path, encoding=encoding) as f:
            yield f
