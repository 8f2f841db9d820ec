"""
Per-date mutual exclusion for simulation runs.

Two layers:
- an in-process lock per cycle date (threads of one worker)
- a transaction-scoped PostgreSQL advisory lock (separate worker processes)

Different dates never contend with each other.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import date
from typing import Dict

from sqlalchemy import text
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

# First key of the two-int advisory lock; the second is the date ordinal
ADVISORY_LOCK_NAMESPACE = 0x41444D  # "ADM"


class DateLockRegistry:
    """Hands out one lock per cycle date, created on first use."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[date, threading.Lock] = {}

    def lock_for(self, cycle_date: date) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(cycle_date)
            if lock is None:
                lock = threading.Lock()
                self._locks[cycle_date] = lock
            return lock

    @contextmanager
    def hold(self, cycle_date: date):
        lock = self.lock_for(cycle_date)
        if not lock.acquire(blocking=False):
            logger.info(f"Waiting for running simulation of {cycle_date}")
            lock.acquire()
        try:
            yield
        finally:
            lock.release()


def acquire_advisory_lock(db: Session, cycle_date: date) -> bool:
    """
    Take the database-level lock for a date inside the current transaction.

    Released automatically at commit/rollback. Returns False on dialects
    without advisory locks, where the in-process lock is the only guard.
    """
    if db.get_bind().dialect.name != "postgresql":
        return False
    db.execute(
        text("SELECT pg_advisory_xact_lock(:namespace, :key)"),
        {"namespace": ADVISORY_LOCK_NAMESPACE, "key": cycle_date.toordinal()},
    )
    return True
