"""Execution timing and per-component execution records."""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from .state_machine import RunState


def jsonable(value: Any) -> Any:
    """Best-effort conversion of an output value into JSON-compatible data."""

    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Mapping):
        return {str(k): jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [jsonable(v) for v in value]
    return repr(value)


class ExecutionTimer:
    """Measures wall-clock timestamps and monotonic duration of a unit of work."""

    def __init__(self) -> None:
        self.started_at: datetime | None = None
        self.ended_at: datetime | None = None
        self._start_mono: float | None = None
        self._end_mono: float | None = None

    def start(self) -> ExecutionTimer:
        self.started_at = datetime.now(tz=UTC)
        self._start_mono = time.perf_counter()
        self.ended_at = None
        self._end_mono = None
        return self

    def stop(self) -> None:
        self.ended_at = datetime.now(tz=UTC)
        self._end_mono = time.perf_counter()

    def reset(self) -> None:
        self.started_at = None
        self.ended_at = None
        self._start_mono = None
        self._end_mono = None

    @property
    def duration(self) -> float | None:
        """Seconds between start and stop, or None until both are recorded."""

        if self._start_mono is None or self._end_mono is None:
            return None
        return self._end_mono - self._start_mono


@dataclass(frozen=True, slots=True)
class ExecutionDetails:
    state: RunState
    started_at: datetime | None
    ended_at: datetime | None
    execution_time: float
    outputs: Mapping[str, Any] = field(default_factory=dict)
    error: BaseException | None = None

    @classmethod
    def from_timer(
        cls,
        timer: ExecutionTimer,
        *,
        state: RunState,
        outputs: Mapping[str, Any] | None = None,
        error: BaseException | None = None,
    ) -> ExecutionDetails:
        return cls(
            state=state,
            started_at=timer.started_at,
            ended_at=timer.ended_at,
            execution_time=timer.duration or 0.0,
            outputs=dict(outputs or {}),
            error=error,
        )

    def to_json(self) -> dict[str, object]:
        out: dict[str, object] = {
            "state": self.state.value,
            "execution_time": self.execution_time,
            "outputs": jsonable(self.outputs),
        }
        if self.started_at is not None:
            out["started_at"] = self.started_at.isoformat()
        if self.ended_at is not None:
            out["ended_at"] = self.ended_at.isoformat()
        if self.error is not None:
            out["error"] = f"{type(self.error).__name__}: {self.error}"
        return out
