from __future__ import annotations

import threading
from enum import Enum

from .errors import IllegalTransitionError


class RunState(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    CANCELED = "canceled"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES: frozenset[RunState] = frozenset(
    {RunState.CANCELED, RunState.COMPLETED, RunState.FAILED}
)


ALLOWED_TRANSITIONS: dict[RunState, set[RunState]] = {
    RunState.NOT_STARTED: {RunState.IN_PROGRESS, RunState.CANCELED},
    RunState.IN_PROGRESS: {
        RunState.PAUSED,
        RunState.CANCELED,
        RunState.COMPLETED,
        RunState.FAILED,
    },
    # A component dispatched before the pause may still fail.
    RunState.PAUSED: {RunState.IN_PROGRESS, RunState.CANCELED, RunState.FAILED},
    RunState.CANCELED: set(),
    RunState.COMPLETED: set(),
    RunState.FAILED: set(),
}


def transition(*, current: RunState, to: RunState) -> RunState:
    allowed = ALLOWED_TRANSITIONS.get(current, set())
    if to not in allowed:
        raise IllegalTransitionError(f"Illegal transition: {current.value} -> {to.value}")
    return to


class RunStateCell:
    """Single owner of a run's state.

    Every read and write goes through one lock, so control calls made from
    other coroutines or threads never race with the execution loop.
    """

    def __init__(self, initial: RunState = RunState.NOT_STARTED) -> None:
        self._state = initial
        self._lock = threading.Lock()

    def get(self) -> RunState:
        with self._lock:
            return self._state

    def set(self, to: RunState) -> RunState:
        with self._lock:
            self._state = transition(current=self._state, to=to)
            return self._state

    def compare_and_set(self, expected: RunState | set[RunState], to: RunState) -> bool:
        """Apply `to` only if the current state is `expected` (or one of them).

        Returns False instead of raising when the state has moved on.
        """

        allowed = expected if isinstance(expected, set) else {expected}
        with self._lock:
            if self._state not in allowed:
                return False
            self._state = transition(current=self._state, to=to)
            return True

    def abort(self, observed: RunState, to: RunState = RunState.FAILED) -> bool:
        """Force `to` if the state is still `observed`, bypassing the table.

        Only for invariant violations, where the observed state has no legal
        edge to Failed.
        """

        with self._lock:
            if self._state is not observed:
                return False
            self._state = to
            return True
