"""Workflow engine: components, run queue, state machine and execution loop.

The intent is deterministic control flow around non-deterministic work:
tasks may do anything, but what runs next, in what order, and what the run
ends up as is decided here and nowhere else.
"""

from .cancellation import CancellationToken, cancellation_requested, current_token
from .components import (
    Component,
    ComponentSource,
    ExecutionMode,
    Logic,
    Subflow,
    Task,
    TaskGroup,
    Trigger,
    component_kind,
    flatten_components,
)
from .engine import Workflow
from .errors import (
    IllegalTransitionError,
    MissingExecutionLogicError,
    UnexpectedRunStateError,
    WorkflowError,
)
from .events import WorkflowEvent, WorkflowEventType
from .inputs import resolve_inputs
from .manager import ComponentsManager
from .reporting import ComponentReport, WorkflowReport
from .state_machine import RunState
from .timing import ExecutionDetails, ExecutionTimer

__all__ = [
    "CancellationToken",
    "Component",
    "ComponentReport",
    "ComponentSource",
    "ComponentsManager",
    "ExecutionDetails",
    "ExecutionMode",
    "ExecutionTimer",
    "IllegalTransitionError",
    "Logic",
    "MissingExecutionLogicError",
    "RunState",
    "Subflow",
    "Task",
    "TaskGroup",
    "Trigger",
    "UnexpectedRunStateError",
    "Workflow",
    "WorkflowError",
    "WorkflowEvent",
    "WorkflowEventType",
    "WorkflowReport",
    "cancellation_requested",
    "component_kind",
    "current_token",
    "flatten_components",
    "resolve_inputs",
]
