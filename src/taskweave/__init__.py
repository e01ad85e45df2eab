"""taskweave: a declarative, composable async workflow engine.

Workflows are built from tasks, task groups, logic, triggers and subflows,
threaded together with `{Name.Key}` input references and run with
pause/resume/cancel control.
"""

__version__ = "0.1.0"

from taskweave.orchestrator.config import EngineSettings
from taskweave.orchestrator.workflow import (
    ExecutionMode,
    Logic,
    RunState,
    Subflow,
    Task,
    TaskGroup,
    Trigger,
    Workflow,
)

__all__ = [
    "__version__",
    "EngineSettings",
    "ExecutionMode",
    "Logic",
    "RunState",
    "Subflow",
    "Task",
    "TaskGroup",
    "Trigger",
    "Workflow",
]
