"""
Keyed mutual exclusion for per-table units of work.

Each key (``table:<id>`` or ``invoice:<name>``) gets its own lock so that
requests against unrelated tables never serialize against each other.
Acquisition is bounded; a timeout raises :class:`ResourceBusyError`.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Optional
from uuid import UUID

from .config import get_settings
from .exceptions import ResourceBusyError

logger = logging.getLogger(__name__)


class _KeyedLock:
    __slots__ = ("lock", "holders")

    def __init__(self):
        self.lock = threading.Lock()
        self.holders = 0


class KeyedLockManager:
    """Thread-safe registry of per-key locks with bounded waits."""

    def __init__(self, timeout_seconds: Optional[float] = None):
        self.timeout_seconds = timeout_seconds
        self._locks: Dict[str, _KeyedLock] = {}
        self._registry_lock = threading.Lock()

    def _checkout(self, key: str) -> _KeyedLock:
        with self._registry_lock:
            entry = self._locks.get(key)
            if entry is None:
                entry = _KeyedLock()
                self._locks[key] = entry
            entry.holders += 1
            return entry

    def _release_entry(self, key: str, entry: _KeyedLock) -> None:
        with self._registry_lock:
            entry.holders -= 1
            # Idle entries leave the registry
            if entry.holders == 0 and self._locks.get(key) is entry:
                del self._locks[key]

    def _timeout(self, timeout: Optional[float]) -> float:
        if timeout is not None:
            return timeout
        if self.timeout_seconds is not None:
            return self.timeout_seconds
        return get_settings().table_lock_timeout_seconds

    @contextmanager
    def hold(self, key: str, timeout: Optional[float] = None):
        """Hold the lock for ``key`` for the duration of the ``with`` block."""
        entry = self._checkout(key)
        wait = self._timeout(timeout)
        if not entry.lock.acquire(timeout=wait):
            self._release_entry(key, entry)
            logger.warning(f"Timed out after {wait}s waiting for lock {key}")
            raise ResourceBusyError(
                "Table is busy with another request, please retry",
                error_code="TABLE_BUSY",
            )
        try:
            yield
        finally:
            entry.lock.release()
            self._release_entry(key, entry)

    def is_locked(self, key: str) -> bool:
        with self._registry_lock:
            entry = self._locks.get(key)
            return entry is not None and entry.lock.locked()


def table_lock_key(table_id: Optional[UUID], invoice_name: Optional[str] = None) -> str:
    """Lock key for a physical table, or for a virtual table scoped by invoice name."""
    if table_id is not None:
        return f"table:{table_id}"
    return f"invoice:{(invoice_name or '').strip()}"


# Process-wide default shared by the services
table_locks = KeyedLockManager()
