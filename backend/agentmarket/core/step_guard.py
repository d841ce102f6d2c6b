"""
Single-flight guard for negotiation steps.

WHAT: Process-wide set of negotiation ids with a step in flight
WHY: Two overlapping steps would both read the same ball and double-act
HOW: Lock-protected set; acquire rejects instead of queueing, release always runs
"""

import threading
from contextlib import contextmanager
from typing import Iterator, Set

from ..utils.exceptions import StepConflictError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class StepGuard:
    """
    In-memory, single-process guard.

    Entries are added when a step starts and removed when it ends, whatever
    the outcome. A fresh process starts empty.
    """

    def __init__(self):
        self._in_flight: Set[str] = set()
        self._lock = threading.Lock()

    def try_acquire(self, negotiation_id: str) -> bool:
        with self._lock:
            if negotiation_id in self._in_flight:
                return False
            self._in_flight.add(negotiation_id)
            return True

    def release(self, negotiation_id: str) -> None:
        with self._lock:
            self._in_flight.discard(negotiation_id)

    def is_busy(self, negotiation_id: str) -> bool:
        with self._lock:
            return negotiation_id in self._in_flight

    def clear(self) -> None:
        with self._lock:
            self._in_flight.clear()

    @contextmanager
    def hold(self, negotiation_id: str) -> Iterator[None]:
        """
        Hold the guard for the duration of the block.

        Raises:
            StepConflictError: another step for this id is running
        """
        if not self.try_acquire(negotiation_id):
            logger.warning(f"Rejected concurrent step for negotiation {negotiation_id}")
            raise StepConflictError(negotiation_id)
        try:
            yield
        finally:
            self.release(negotiation_id)


# Singleton instance
step_guard = StepGuard()
