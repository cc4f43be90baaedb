"""
Tests for per-key locking used by table units of work.
"""

import threading
import uuid

import pytest

from core.exceptions import ResourceBusyError
from core.locks import KeyedLockManager, table_lock_key


class TestKeyedLockManager:
    def test_hold_and_release(self):
        locks = KeyedLockManager(timeout_seconds=0.1)

        with locks.hold("table:1"):
            assert locks.is_locked("table:1")

        assert not locks.is_locked("table:1")

    def test_timeout_raises_busy(self):
        locks = KeyedLockManager(timeout_seconds=0.05)
        acquired = threading.Event()
        release = threading.Event()

        def holder():
            with locks.hold("table:1"):
                acquired.set()
                release.wait(5)

        thread = threading.Thread(target=holder)
        thread.start()
        acquired.wait(5)
        try:
            with pytest.raises(ResourceBusyError) as exc_info:
                with locks.hold("table:1"):
                    pass
        finally:
            release.set()
            thread.join(5)

        assert exc_info.value.error_code == "TABLE_BUSY"
        assert exc_info.value.headers["Retry-After"] == "1"

    def test_unrelated_keys_do_not_block(self):
        locks = KeyedLockManager(timeout_seconds=0.05)

        with locks.hold("table:1"):
            with locks.hold("table:2"):
                assert locks.is_locked("table:1")
                assert locks.is_locked("table:2")

    def test_lock_is_released_when_block_raises(self):
        locks = KeyedLockManager(timeout_seconds=0.05)

        with pytest.raises(RuntimeError):
            with locks.hold("table:1"):
                raise RuntimeError("boom")

        with locks.hold("table:1"):
            pass

    def test_waiter_gets_the_lock_after_release(self):
        locks = KeyedLockManager(timeout_seconds=5)
        order = []
        acquired = threading.Event()

        def holder():
            with locks.hold("table:1"):
                acquired.set()
                order.append("holder")

        with locks.hold("table:1"):
            thread = threading.Thread(target=holder)
            thread.start()
            assert not acquired.wait(0.1)
            order.append("main")

        thread.join(5)
        assert order == ["main", "holder"]


def test_table_lock_key():
    table_id = uuid.uuid4()

    assert table_lock_key(table_id) == f"table:{table_id}"
    assert table_lock_key(None, " Takeaway 3 ") == "invoice:Takeaway 3"
