"""Keyed row locks held for the lifetime of a loan transaction"""

import threading
import time
from contextlib import contextmanager
from typing import Dict, Iterator, Tuple

from library_loans.domain.exceptions import LoanLockTimeoutError
from library_loans.infrastructure.observability.metrics import lock_timeout_counter, lock_wait_histogram


class RowLockRegistry:
    """
    One mutex per (table, row id), created on demand.

    Complements SELECT ... FOR UPDATE: it serializes check-then-act
    sequences inside this process even on databases without row locks
    (SQLite), and gives every wait a timeout. Entries are dropped when
    no thread holds or waits on them.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Tuple[str, int], threading.Lock] = {}
        self._users: Dict[Tuple[str, int], int] = {}

    @contextmanager
    def hold(self, table: str, row_id: int, timeout: float) -> Iterator[None]:
        """
        Hold the lock for one row until the block exits.

        Raises:
            LoanLockTimeoutError: If the lock is not acquired within timeout seconds
        """
        key = (table, row_id)
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._users[key] = self._users.get(key, 0) + 1

        try:
            start_time = time.monotonic()
            acquired = lock.acquire(timeout=timeout)
            lock_wait_histogram.labels(table=table).observe(time.monotonic() - start_time)
            if not acquired:
                lock_timeout_counter.labels(table=table).inc()
                raise LoanLockTimeoutError(
                    f"Timed out after {timeout}s waiting for {table} {row_id}"
                )
            try:
                yield
            finally:
                lock.release()
        finally:
            with self._guard:
                self._users[key] -= 1
                if self._users[key] == 0:
                    del self._users[key]
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


# Shared by every service instance in the process
row_locks = RowLockRegistry()
