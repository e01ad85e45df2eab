"""The schedulable building blocks of a workflow.

A workflow queue holds exactly five kinds of component:

* `Task`      - a named async unit of work: resolved inputs in, outputs out.
* `TaskGroup` - tasks run sequentially or in parallel as one scheduling step.
* `Logic`     - computes new components that run immediately next.
* `Trigger`   - waits for an external condition, then yields new components.
* `Subflow`   - a nested workflow run to completion as a single step.

Logic and Trigger callables return components that are spliced into the
front of the pending queue. A trigger that returns a fresh trigger (or
itself) keeps polling until its own closure decides to return an empty list;
the engine does not bound that loop.
"""

from __future__ import annotations

import asyncio
import inspect
import uuid
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import KW_ONLY, dataclass, field
from enum import Enum
from typing import Any, Protocol, TypeAlias

from .errors import MissingExecutionLogicError
from .state_machine import RunState
from .timing import ExecutionDetails, ExecutionTimer

TaskOutputs: TypeAlias = Mapping[str, Any]
TaskExecutor: TypeAlias = Callable[[dict[str, Any]], Awaitable[TaskOutputs] | TaskOutputs]
ComponentFactory: TypeAlias = Callable[[], Awaitable[Iterable[Any] | None] | Iterable[Any] | None]


def _new_id() -> str:
    return uuid.uuid4().hex


def _is_async_callable(obj: object) -> bool:
    return inspect.iscoroutinefunction(obj) or inspect.iscoroutinefunction(
        getattr(obj, "__call__", None)
    )


class ExecutionMode(str, Enum):
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"


class ComponentSource(Protocol):
    """Anything that can stand in for a component, e.g. a reusable trigger."""

    def to_component(self) -> Component: ...


class SubflowRunnable(Protocol):
    """The surface a nested workflow must offer to run as a Subflow."""

    name: str
    description: str

    async def start(self) -> None: ...

    @property
    def outputs(self) -> dict[str, Any]: ...

    @property
    def state(self) -> RunState: ...


@dataclass(eq=False)
class Task:
    name: str
    executor: TaskExecutor | None = None
    _: KW_ONLY
    description: str = ""
    inputs: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=_new_id)
    details: ExecutionDetails | None = field(default=None, init=False)

    async def execute(self, inputs: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Run the executor with static inputs overlaid by `inputs`.

        Coroutine executors run on the event loop. Plain callables run through
        `asyncio.to_thread`, so a blocking body never stalls sibling tasks or
        the workflow's control calls.

        Raises:
            MissingExecutionLogicError: The task has no executor.
            TypeError: The executor did not return a mapping.
        """

        if self.executor is None:
            raise MissingExecutionLogicError(self.name)

        merged = {**self.inputs, **(inputs or {})}
        if _is_async_callable(self.executor):
            result = self.executor(merged)
        else:
            # Worker thread; the context, cancellation token included, is copied in.
            result = await asyncio.to_thread(self.executor, merged)
        if inspect.isawaitable(result):
            result = await result
        if not isinstance(result, Mapping):
            raise TypeError(
                f"Task {self.name!r} returned {type(result).__name__}, expected a mapping"
            )
        return dict(result)

    def to_component(self) -> Task:
        return self


@dataclass(eq=False)
class TaskGroup:
    name: str
    tasks: list[Task] = field(default_factory=list)
    _: KW_ONLY
    mode: ExecutionMode = ExecutionMode.SEQUENTIAL
    description: str = ""
    id: str = field(default_factory=_new_id)
    details: ExecutionDetails | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        self.tasks = list(self.tasks)
        for task in self.tasks:
            if not isinstance(task, Task):
                raise TypeError(
                    f"TaskGroup {self.name!r} only holds tasks, got {type(task).__name__}"
                )

    def to_component(self) -> TaskGroup:
        return self


async def _produce(component: Logic | Trigger, factory: ComponentFactory) -> list[Component]:
    timer = ExecutionTimer().start()
    try:
        result = factory()
        if inspect.isawaitable(result):
            result = await result
        produced = flatten_components(result or [])
    except Exception as e:
        timer.stop()
        component.details = ExecutionDetails.from_timer(timer, state=RunState.FAILED, error=e)
        raise
    timer.stop()
    component.details = ExecutionDetails.from_timer(timer, state=RunState.COMPLETED)
    return produced


@dataclass(eq=False)
class Logic:
    name: str
    evaluator: ComponentFactory
    _: KW_ONLY
    description: str = ""
    id: str = field(default_factory=_new_id)
    details: ExecutionDetails | None = field(default=None, init=False)

    async def evaluate(self) -> list[Component]:
        return await _produce(self, self.evaluator)

    def to_component(self) -> Logic:
        return self


@dataclass(eq=False)
class Trigger:
    name: str
    waiter: ComponentFactory
    _: KW_ONLY
    description: str = ""
    id: str = field(default_factory=_new_id)
    details: ExecutionDetails | None = field(default=None, init=False)

    async def wait_for_trigger(self) -> list[Component]:
        return await _produce(self, self.waiter)

    def to_component(self) -> Trigger:
        return self


@dataclass(eq=False)
class Subflow:
    workflow: SubflowRunnable
    _: KW_ONLY
    id: str = field(default_factory=_new_id)

    @classmethod
    def build(
        cls,
        name: str,
        description: str = "",
        components: Iterable[Any] = (),
        **kwargs: Any,
    ) -> Subflow:
        from .engine import Workflow

        return cls(Workflow(name, description, components, **kwargs))

    @property
    def name(self) -> str:
        return self.workflow.name

    @property
    def description(self) -> str:
        return self.workflow.description

    @property
    def details(self) -> ExecutionDetails | None:
        return getattr(self.workflow, "details", None)

    def to_component(self) -> Subflow:
        return self


Component: TypeAlias = Task | TaskGroup | Logic | Trigger | Subflow

COMPONENT_TYPES: tuple[type, ...] = (Task, TaskGroup, Logic, Trigger, Subflow)


def component_kind(component: Component) -> str:
    return type(component).__name__


def flatten_components(items: Any) -> list[Component]:
    """Flatten a component declaration into an ordered list.

    Accepts components, objects with `to_component()`, nested iterables
    (conditional or looped construction) and None, which is skipped.
    """

    flat: list[Component] = []
    _collect(items, flat)
    return flat


def _collect(item: Any, into: list[Component]) -> None:
    if item is None:
        return
    if isinstance(item, COMPONENT_TYPES):
        into.append(item)  # type: ignore[arg-type]
        return
    to_component = getattr(item, "to_component", None)
    if callable(to_component):
        _collect(to_component(), into)
        return
    if isinstance(item, Iterable) and not isinstance(item, (str, bytes, Mapping)):
        for child in item:
            _collect(child, into)
        return
    raise TypeError(f"Not a workflow component: {item!r}")
