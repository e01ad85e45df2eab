"""Exceptions raised by the workflow engine.

Errors thrown by task executors, logic evaluators and subflows are never
wrapped: they propagate verbatim and end the run as failed. Trigger waiter
errors are logged and swallowed by the engine.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .state_machine import RunState


class WorkflowError(Exception):
    """Base class for errors raised by the engine itself."""


class MissingExecutionLogicError(WorkflowError):
    def __init__(self, task_name: str) -> None:
        super().__init__(f"No execution logic provided for task: {task_name}")
        self.task_name = task_name


class UnexpectedRunStateError(WorkflowError):
    def __init__(self, state: RunState) -> None:
        super().__init__(f"Workflow in unexpected state: {state.value}")
        self.state = state


class IllegalTransitionError(WorkflowError, ValueError):
    pass


class WorkflowCanceled(WorkflowError):
    """Unwinds the execution loop once cancellation is observed.

    Internal only: `Workflow.start()` converts it into the canceled state.
    """
