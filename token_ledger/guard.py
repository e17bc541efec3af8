"""
Reentrancy Guard

Mutual exclusion plus a two-state latch around mutating ledger calls.
Other threads wait on the lock; the thread already holding it finds the
latch BUSY and is rejected with ReentrantCall instead of deadlocking or
interleaving with itself.
"""

import threading
from contextlib import contextmanager
from enum import Enum
from typing import Optional

from .exceptions import ReentrantCall


class GuardStatus(Enum):
    """Latch states"""
    IDLE = "idle"
    BUSY = "busy"


class ReentrancyGuard:
    """
    Lock + latch held for the full duration of one mutating call

    Re-entry is only detected on the thread that holds the guard. An
    observer that hands a mutating call to another thread and blocks on its
    result deadlocks instead of getting ReentrantCall: the worker waits for
    the lock, which the observer's thread releases only after returning.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._status = GuardStatus.IDLE
        self._operation: Optional[str] = None

    @property
    def status(self) -> GuardStatus:
        return self._status

    @property
    def active_operation(self) -> Optional[str]:
        """Name of the call currently holding the latch, if any"""
        return self._operation

    def is_busy(self) -> bool:
        return self._status is GuardStatus.BUSY

    @contextmanager
    def enter(self, operation: str):
        """
        Hold the guard for one operation

        Args:
            operation: Name of the entry point, reported on rejection

        Raises:
            ReentrantCall: If the current thread is already inside a guarded call
        """
        with self._lock:
            if self._status is GuardStatus.BUSY:
                raise ReentrantCall(
                    f"{operation} rejected: {self._operation} is still in progress"
                )

            self._status = GuardStatus.BUSY
            self._operation = operation
            try:
                yield
            finally:
                self._status = GuardStatus.IDLE
                self._operation = None

