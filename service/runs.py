"""
Tracks the single solver run allowed at a time.
"""

from typing import Optional
import logging
import threading

from service.backtracking_solver import CancellationToken

logger = logging.getLogger(__name__)


class SolverBusyError(Exception):
    """Raised when a run is requested while another is still active."""


class SolverRunRegistry:

    def __init__(self):
        self._lock = threading.Lock()
        self._active: Optional[CancellationToken] = None

    def start(self) -> CancellationToken:
        with self._lock:
            if self._active is not None:
                raise SolverBusyError("A timetable generation run is already in progress")
            self._active = CancellationToken()
            return self._active

    def finish(self, token: CancellationToken) -> None:
        with self._lock:
            if self._active is token:
                self._active = None

    def cancel(self) -> bool:
        """Flag the active run for cancellation. Returns False when idle."""
        with self._lock:
            if self._active is None:
                return False
            self._active.cancel()
        logger.info("Cancellation requested for the active generation run")
        return True
