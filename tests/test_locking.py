"""Tests for the collection lock and file writes."""

import threading
import time

import pytest

from oodles.locking import ReadWriteLock, atomic_write, file_lock, lock_path_for, locked_atomic_write


class TestReadWriteLock:
    """Tests for ReadWriteLock."""

    def test_readers_share(self):
        lock = ReadWriteLock()
        inside = []
        barrier = threading.Barrier(3, timeout=5)

        def reader():
            with lock.read_locked():
                inside.append(1)
                barrier.wait()

        threads = [threading.Thread(target=reader) for _ in range(3)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)

        assert len(inside) == 3

    def test_writer_excludes_readers(self):
        lock = ReadWriteLock()
        events = []

        lock.acquire_write()

        def reader():
            with lock.read_locked():
                events.append("read")

        t = threading.Thread(target=reader)
        t.start()
        time.sleep(0.05)
        events.append("write-done")
        lock.release_write()
        t.join(timeout=5)

        assert events == ["write-done", "read"]

    def test_writer_waits_for_reader(self):
        lock = ReadWriteLock()
        events = []

        lock.acquire_read()

        def writer():
            with lock.write_locked():
                events.append("write")

        t = threading.Thread(target=writer)
        t.start()
        time.sleep(0.05)
        events.append("read-done")
        lock.release_read()
        t.join(timeout=5)

        assert events == ["read-done", "write"]

    def test_released_on_exception(self):
        lock = ReadWriteLock()
        with pytest.raises(RuntimeError):
            with lock.write_locked():
                raise RuntimeError("boom")
        with lock.read_locked():
            pass


class TestFileWrites:
    """Tests for file_lock and atomic_write."""

    def test_lock_file_created_beside_target(self, temp_dir):
        target = temp_dir / "doc.oodle"
        with file_lock(target):
            assert lock_path_for(target).exists()
        assert lock_path_for(target).name == "doc.oodle.lock"

    def test_atomic_write_is_byte_exact(self, temp_dir):
        target = temp_dir / "doc"
        with atomic_write(target) as f:
            f.write("a\nb\n")
        assert target.read_bytes() == b"a\nb\n"
        assert not (temp_dir / "doc.tmp").exists()

    def test_atomic_write_failure_keeps_old_content(self, temp_dir):
        target = temp_dir / "doc"
        target.write_text("old", encoding="utf-8")
        with pytest.raises(RuntimeError):
            with atomic_write(target) as f:
                f.write("new")
                raise RuntimeError("boom")
        assert target.read_text(encoding="utf-8") == "old"
        assert not (temp_dir / "doc.tmp").exists()

    def test_locked_atomic_write(self, temp_dir):
        target = temp_dir / "nested" / "doc"
        with locked_atomic_write(target) as f:
            f.write("-= T =-\n")
        assert target.read_text(encoding="utf-8") == "-= T =-\n"
