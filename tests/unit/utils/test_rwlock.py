"""Unit tests for ReadWriteLock utility."""

import threading
import time

import pytest

from hotpath_agent.utils.rwlock import ReadWriteLock


@pytest.fixture
def lock():
    return ReadWriteLock()


class TestReadWriteLock:
    def test_readers_share_the_lock(self, lock: ReadWriteLock):
        both_inside = threading.Barrier(2, timeout=2)

        def reader():
            with lock.read_locked():
                # Would time out if the second reader were blocked
                both_inside.wait()

        threads = [threading.Thread(target=reader) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)

        assert not both_inside.broken

    def test_writer_waits_for_reader(self, lock: ReadWriteLock):
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

    def test_waiting_writer_blocks_new_readers(self, lock: ReadWriteLock):
        events = []
        lock.acquire_read()

        def writer():
            with lock.write_locked():
                events.append("write")

        def late_reader():
            with lock.read_locked():
                events.append("late-read")

        w = threading.Thread(target=writer)
        w.start()
        time.sleep(0.05)
        r = threading.Thread(target=late_reader)
        r.start()
        time.sleep(0.05)

        lock.release_read()
        w.join(timeout=5)
        r.join(timeout=5)

        assert events == ["write", "late-read"]

    def test_release_without_acquire_raises(self, lock: ReadWriteLock):
        with pytest.raises(RuntimeError):
            lock.release_read()
        with pytest.raises(RuntimeError):
            lock.release_write()

    def test_lock_is_released_on_exception(self, lock: ReadWriteLock):
        with pytest.raises(ValueError):
            with lock.write_locked():
                raise ValueError("boom")

        # Would deadlock if the write lock were still held
        with lock.read_locked():
            pass
