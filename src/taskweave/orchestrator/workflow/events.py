from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum


class WorkflowEventType(str, Enum):
    WORKFLOW_STARTED = "workflow_started"
    WORKFLOW_PAUSED = "workflow_paused"
    WORKFLOW_RESUMED = "workflow_resumed"
    WORKFLOW_CANCELED = "workflow_canceled"
    WORKFLOW_COMPLETED = "workflow_completed"
    WORKFLOW_FAILED = "workflow_failed"
    COMPONENT_STARTED = "component_started"
    COMPONENT_COMPLETED = "component_completed"
    COMPONENT_FAILED = "component_failed"
    TRIGGER_FAILED = "trigger_failed"


@dataclass(frozen=True, slots=True)
class WorkflowEvent:
    """A telemetry signal emitted by a running workflow.

    Events describe what happened; listeners never influence the run.
    """

    type: WorkflowEventType
    workflow: str
    component: str | None = None
    payload: dict[str, object] = field(default_factory=dict)


EventListener = Callable[[WorkflowEvent], None]
