"""A thread-safe open/closed indicator for server readiness."""

from __future__ import annotations

import threading
from enum import IntEnum


class CircuitState(IntEnum):
    """State of a :class:`Circuit`: open is non-functional, closed is functional."""

    OPEN = 0
    CLOSED = 1

    def __str__(self) -> str:
        return self.name


class Circuit:
    """A point-in-time indicator of functionality; starts open."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._state = CircuitState.OPEN

    @property
    def state(self) -> CircuitState:
        """The current state; it may change right after it is read."""
        with self._lock:
            return self._state

    def _swap(self, expected: CircuitState, new: CircuitState) -> bool:
        with self._lock:
            if self._state is not expected:
                return False
            self._state = new
            return True

    def close(self) -> bool:
        """Close the circuit; return False if it was already closed."""
        return self._swap(CircuitState.OPEN, CircuitState.CLOSED)

    def open(self) -> bool:
        """Open the circuit; return False if it was already open."""
        return self._swap(CircuitState.CLOSED, CircuitState.OPEN)