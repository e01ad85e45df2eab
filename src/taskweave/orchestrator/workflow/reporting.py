"""Post-run reports for workflows and their components."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .components import Component, Subflow, TaskGroup, component_kind
from .state_machine import RunState
from .timing import jsonable

if TYPE_CHECKING:
    from .engine import Workflow


def _error_text(error: BaseException | None) -> str | None:
    if error is None:
        return None
    return f"{type(error).__name__}: {error}"


@dataclass(frozen=True, slots=True)
class ComponentReport:
    id: str
    name: str
    description: str
    type: str
    state: RunState
    execution_time: float | None = None
    outputs: Mapping[str, Any] | None = None
    child_reports: tuple[ComponentReport, ...] = ()
    error: BaseException | None = None

    def to_json(self) -> dict[str, object]:
        out: dict[str, object] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "state": self.state.value,
            "execution_time": self.execution_time,
            "outputs": jsonable(self.outputs) if self.outputs is not None else None,
            "error": _error_text(self.error),
        }
        if self.child_reports:
            out["child_reports"] = [child.to_json() for child in self.child_reports]
        return out

    def printed_report(
        self, *, compact: bool = False, show_outputs: bool = True, indent: str = ""
    ) -> str:
        lines = [
            f"{indent}Type: {self.type}",
            f"{indent}ID: {self.id}",
            f"{indent}Name: {self.name}",
            f"{indent}Description: {self.description}",
            f"{indent}State: {self.state.value}",
        ]
        if self.execution_time is not None:
            lines.append(f"{indent}Execution Time: {self.execution_time:.2f} sec")
        if show_outputs and self.outputs:
            lines.append(f"{indent}Outputs: {dict(self.outputs)}")
        if self.error is not None:
            lines.append(f"{indent}Error: {_error_text(self.error)}")
        if self.child_reports:
            lines.append(f"{indent}Child Reports:")
            for child in self.child_reports:
                if compact:
                    lines.append(f"{indent}  - {child.name} ({child.state.value})")
                else:
                    lines.append(
                        child.printed_report(
                            compact=False, show_outputs=show_outputs, indent=indent + "   "
                        )
                    )
        return "\n".join(lines) + "\n"


@dataclass(frozen=True, slots=True)
class WorkflowReport:
    id: str
    name: str
    description: str
    state: RunState
    execution_time: float | None = None
    outputs: Mapping[str, Any] | None = None
    component_reports: tuple[ComponentReport, ...] = field(default_factory=tuple)
    error: BaseException | None = None

    def to_json(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "state": self.state.value,
            "execution_time": self.execution_time,
            "outputs": jsonable(self.outputs) if self.outputs is not None else None,
            "error": _error_text(self.error),
            "component_reports": [report.to_json() for report in self.component_reports],
        }

    def printed_report(self, *, compact: bool = False, show_outputs: bool = True) -> str:
        lines = [
            "Workflow Report:",
            f"ID: {self.id}",
            f"Name: {self.name}",
            f"Description: {self.description}",
            f"State: {self.state.value}",
        ]
        if self.execution_time is not None:
            lines.append(f"Total Execution Time: {self.execution_time:.2f} sec")
        if show_outputs and self.outputs:
            lines.append(f"Workflow Outputs: {dict(self.outputs)}")
        if self.error is not None:
            lines.append(f"Workflow Error: {_error_text(self.error)}")
        out = "\n".join(lines) + "\n"
        if self.component_reports:
            out += "Component Reports:\n"
            for report in self.component_reports:
                out += (
                    report.printed_report(compact=compact, show_outputs=show_outputs, indent="   ")
                    + "\n"
                )
        return out


def component_report(component: Component) -> ComponentReport:
    if isinstance(component, Subflow):
        nested = component.workflow
        manager = getattr(nested, "components", None)
        completed = getattr(manager, "completed", ())
        details = component.details
        return ComponentReport(
            id=getattr(nested, "id", component.id),
            name=component.name,
            description=component.description,
            type="Subflow",
            state=nested.state,
            execution_time=details.execution_time if details is not None else None,
            outputs=nested.outputs,
            child_reports=tuple(component_report(child) for child in completed),
            error=getattr(nested, "error", None),
        )

    children: tuple[ComponentReport, ...] = ()
    if isinstance(component, TaskGroup):
        children = tuple(component_report(task) for task in component.tasks)

    details = component.details
    if details is None:
        return ComponentReport(
            id=component.id,
            name=component.name,
            description=component.description,
            type=component_kind(component),
            state=RunState.NOT_STARTED,
            child_reports=children,
        )
    return ComponentReport(
        id=component.id,
        name=component.name,
        description=component.description,
        type=component_kind(component),
        state=details.state,
        execution_time=details.execution_time,
        outputs=details.outputs,
        child_reports=children,
        error=details.error,
    )


def workflow_report(workflow: Workflow) -> WorkflowReport:
    completed = workflow.components.completed
    details = workflow.details
    if details is not None:
        execution_time: float | None = details.execution_time
    else:
        execution_time = sum(
            c.details.execution_time for c in completed if c.details is not None
        )
    return WorkflowReport(
        id=workflow.id,
        name=workflow.name,
        description=workflow.description,
        state=workflow.state,
        execution_time=execution_time,
        outputs=workflow.outputs,
        component_reports=tuple(component_report(c) for c in completed),
        error=workflow.error,
    )
