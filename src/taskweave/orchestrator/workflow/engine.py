"""The workflow execution loop.

A `Workflow` drains its ComponentsManager one component at a time. Task and
TaskGroup outputs are merged into the workflow outputs under
``"<ComponentName>.<OutputKey>"``; Logic and Trigger results are spliced into
the front of the queue; Subflows run to completion and merge their outputs
unprefixed.

Run state is owned by a `RunStateCell`. `pause()`, `resume()` and `cancel()`
may be called from other coroutines (or threads) while `start()` is running;
the loop only observes them at its state check before each dispatch.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Iterable, Mapping
from typing import Any

from taskweave.orchestrator.config import EngineSettings

from .cancellation import CancellationToken, bind_token, unbind_token
from .components import (
    Component,
    ExecutionMode,
    Logic,
    Subflow,
    SubflowRunnable,
    Task,
    TaskGroup,
    Trigger,
    component_kind,
    flatten_components,
)
from .errors import UnexpectedRunStateError, WorkflowCanceled, WorkflowError
from .events import EventListener, WorkflowEvent, WorkflowEventType
from .inputs import namespaced, resolve_inputs
from .manager import ComponentsManager
from .reporting import WorkflowReport, workflow_report
from .state_machine import RunState, RunStateCell
from .timing import ExecutionDetails, ExecutionTimer

_logger = logging.getLogger(__name__)

_ACTIVE_STATES = {RunState.IN_PROGRESS, RunState.PAUSED}


class Workflow:
    """A declarative, composable run of tasks, groups, logic, triggers and subflows.

    Example:
        workflow = Workflow(
            "Doubler",
            components=[
                Task("A", lambda _inputs: {"v": 1}),
                Task("B", double, inputs={"in": "{A.v}"}),
            ],
        )
        await workflow.start()
        workflow.outputs  # {"A.v": 1, "B.out": 2}

    Args:
        name: Human-readable name, also used in log records.
        description: Free-form description.
        components: Initial queue. Nested lists and None are flattened.
        logger: Logger for lifecycle records (defaults to this module's logger).
        settings: Engine settings (defaults to `EngineSettings()`).
        listener: Optional callable receiving `WorkflowEvent` telemetry.
    """

    def __init__(
        self,
        name: str,
        description: str = "",
        components: Iterable[Any] = (),
        *,
        logger: logging.Logger | None = None,
        settings: EngineSettings | None = None,
        listener: EventListener | None = None,
    ) -> None:
        self.id = uuid.uuid4().hex
        self.name = name
        self.description = description
        self.components = ComponentsManager(flatten_components(components))
        self.timer = ExecutionTimer()
        self.details: ExecutionDetails | None = None
        self.error: BaseException | None = None

        self._logger = logger or _logger
        self._settings = settings or EngineSettings()
        self._listener = listener

        self._state = RunStateCell()
        self._outputs: dict[str, Any] = {}
        self._token = CancellationToken()
        self._wakeup = asyncio.Event()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._active_subflow: SubflowRunnable | None = None

    def __repr__(self) -> str:
        return f"Workflow(name={self.name!r}, state={self.state.value})"

    @property
    def state(self) -> RunState:
        return self._state.get()

    @property
    def outputs(self) -> dict[str, Any]:
        return dict(self._outputs)

    @property
    def cancellation_token(self) -> CancellationToken:
        return self._token

    # Lifecycle

    async def start(self) -> None:
        """Run the workflow until the queue drains, it is canceled, or it fails.

        Calling `start()` on a workflow that is no longer NotStarted is a no-op.
        Component failures never escape: they end the run as Failed and are
        kept on `error` and `details`.
        """

        if not self._state.compare_and_set(RunState.NOT_STARTED, RunState.IN_PROGRESS):
            self._logger.debug(
                "Workflow already started or finished",
                extra=self._extra(state=self.state.value),
            )
            return

        self._loop = asyncio.get_running_loop()
        handle = bind_token(self._token)
        self.timer.start()
        self._logger.info("Workflow started", extra=self._extra(pending=len(self.components)))
        self._emit(WorkflowEventType.WORKFLOW_STARTED)

        try:
            await self._execute_components()
        except WorkflowCanceled:
            self._logger.info("Workflow execution canceled", extra=self._extra())
        except UnexpectedRunStateError as e:
            failed = self._state.compare_and_set(_ACTIVE_STATES, RunState.FAILED)
            if failed or self._state.abort(e.state):
                self.error = e
            self._logger.exception("Workflow failed", extra=self._extra())
        except asyncio.CancelledError:
            self._state.compare_and_set(_ACTIVE_STATES, RunState.CANCELED)
            self._token.cancel()
            self._finish()
            raise
        except Exception as e:
            if self._state.compare_and_set(_ACTIVE_STATES, RunState.FAILED):
                self.error = e
                self._logger.exception("Workflow failed", extra=self._extra())
            else:
                # Canceled while the failing component was in flight; canceled wins.
                self._logger.warning(
                    "Component failed after cancellation",
                    exc_info=True,
                    extra=self._extra(state=self.state.value),
                )
        finally:
            unbind_token(handle)

        self._finish()

    def pause(self) -> bool:
        if not self._state.compare_and_set(RunState.IN_PROGRESS, RunState.PAUSED):
            self._logger.debug(
                "Cannot pause workflow that is not in progress",
                extra=self._extra(state=self.state.value),
            )
            return False
        self._forward("pause")
        self._logger.info("Workflow paused", extra=self._extra())
        self._emit(WorkflowEventType.WORKFLOW_PAUSED)
        return True

    def resume(self) -> bool:
        if not self._state.compare_and_set(RunState.PAUSED, RunState.IN_PROGRESS):
            self._logger.debug(
                "Cannot resume workflow that is not paused",
                extra=self._extra(state=self.state.value),
            )
            return False
        self._notify()
        self._forward("resume")
        self._logger.info("Workflow resumed", extra=self._extra())
        self._emit(WorkflowEventType.WORKFLOW_RESUMED)
        return True

    def cancel(self) -> bool:
        """Request cancellation.

        Takes effect at the loop's next state check; a component already in
        flight runs to completion. Long-running bodies can observe the request
        through `cancellation_requested()`.
        """

        if not self._state.compare_and_set(
            {RunState.NOT_STARTED, RunState.IN_PROGRESS, RunState.PAUSED}, RunState.CANCELED
        ):
            self._logger.debug(
                "Cannot cancel workflow in a terminal state",
                extra=self._extra(state=self.state.value),
            )
            return False
        self._token.cancel()
        self._notify()
        self._forward("cancel")
        self._logger.info("Workflow cancel requested", extra=self._extra())
        self._emit(WorkflowEventType.WORKFLOW_CANCELED)
        return True

    def generate_report(self) -> WorkflowReport:
        return workflow_report(self)

    # Execution loop

    async def _execute_components(self) -> None:
        step = 0
        while True:
            await self._check_state()

            component = self.components.remove_first()
            if component is None:
                if self._state.compare_and_set(RunState.IN_PROGRESS, RunState.COMPLETED):
                    return
                # Paused or canceled since the check; let the check handle it.
                continue

            step += 1
            self._logger.debug(
                "Dispatching component",
                extra=self._extra(
                    step=step, component=component.name, kind=component_kind(component)
                ),
            )
            self._emit(WorkflowEventType.COMPONENT_STARTED, component, step=step)
            try:
                await self._execute_component(component)
            except Exception as e:
                self._emit(
                    WorkflowEventType.COMPONENT_FAILED,
                    component,
                    step=step,
                    error=f"{type(e).__name__}: {e}",
                )
                raise
            self.components.complete(component)
            self._emit(WorkflowEventType.COMPONENT_COMPLETED, component, step=step)

    async def _check_state(self) -> None:
        waiting = False
        while True:
            state = self._state.get()
            if state is RunState.IN_PROGRESS:
                return
            if state is RunState.CANCELED:
                raise WorkflowCanceled()
            if state is RunState.PAUSED:
                if not waiting:
                    self._logger.debug("Execution paused, waiting for resume", extra=self._extra())
                    waiting = True
                await self._wait_for_wakeup()
                continue
            self._logger.error(
                "Workflow in unexpected state", extra=self._extra(state=state.value)
            )
            raise UnexpectedRunStateError(state)

    async def _wait_for_wakeup(self) -> None:
        self._wakeup.clear()
        if self._state.get() is not RunState.PAUSED:
            return
        try:
            await asyncio.wait_for(
                self._wakeup.wait(), timeout=self._settings.pause_poll_interval
            )
        except TimeoutError:
            pass

    async def _execute_component(self, component: Component) -> None:
        match component:
            case Task():
                outputs = await self._execute_task(component, self._outputs)
                self._merge(namespaced(component.name, outputs))
            case TaskGroup():
                await self._execute_task_group(component)
            case Logic():
                self.components.insert(await component.evaluate())
            case Trigger():
                await self._execute_trigger(component)
            case Subflow():
                await self._execute_subflow(component)
            case _:
                raise TypeError(f"Not a workflow component: {component!r}")

    async def _execute_task(self, task: Task, outputs: Mapping[str, Any]) -> dict[str, Any]:
        resolved = resolve_inputs(task.inputs, outputs)
        timer = ExecutionTimer().start()
        try:
            result = await task.execute(resolved)
        except asyncio.CancelledError:
            timer.stop()
            task.details = ExecutionDetails.from_timer(timer, state=RunState.CANCELED)
            raise
        except Exception as e:
            timer.stop()
            task.details = ExecutionDetails.from_timer(timer, state=RunState.FAILED, error=e)
            raise
        timer.stop()
        task.details = ExecutionDetails.from_timer(timer, state=RunState.COMPLETED, outputs=result)
        self._logger.debug(
            "Task completed",
            extra=self._extra(component=task.name, duration=task.details.execution_time),
        )
        return result

    async def _execute_task_group(self, group: TaskGroup) -> None:
        timer = ExecutionTimer().start()
        group_outputs: dict[str, Any] = {}
        try:
            if group.mode is ExecutionMode.PARALLEL:
                await self._run_parallel(group, group_outputs)
                self._merge(namespaced(group.name, group_outputs))
            else:
                for task in group.tasks:
                    result = await self._execute_task(task, self._outputs)
                    task_outputs = namespaced(task.name, result)
                    group_outputs.update(task_outputs)
                    self._merge(namespaced(group.name, task_outputs))
        except BaseException as e:
            timer.stop()
            state = RunState.FAILED if isinstance(e, Exception) else RunState.CANCELED
            group.details = ExecutionDetails.from_timer(
                timer,
                state=state,
                outputs=group_outputs,
                error=e if isinstance(e, Exception) else None,
            )
            raise
        timer.stop()
        group.details = ExecutionDetails.from_timer(
            timer, state=RunState.COMPLETED, outputs=group_outputs
        )
        self._logger.debug(
            "Task group completed",
            extra=self._extra(
                component=group.name,
                mode=group.mode.value,
                duration=group.details.execution_time,
            ),
        )

    async def _run_parallel(self, group: TaskGroup, group_outputs: dict[str, Any]) -> None:
        """Run every task of `group` concurrently; the first failure cancels the rest.

        All members resolve inputs against the same pre-group snapshot.
        """

        if not group.tasks:
            return

        snapshot = dict(self._outputs)
        merge_lock = asyncio.Lock()

        async def run(task: Task) -> None:
            task_outputs = await self._execute_task(task, snapshot)
            async with merge_lock:
                group_outputs.update(namespaced(task.name, task_outputs))

        running = [
            asyncio.create_task(run(task), name=f"{self.name}:{group.name}:{task.name}")
            for task in group.tasks
        ]
        try:
            await asyncio.wait(running, return_when=asyncio.FIRST_EXCEPTION)
        except asyncio.CancelledError:
            await _cancel_all(running)
            raise

        errors = [t.exception() for t in running if t.done() and not t.cancelled()]
        first_error = next((e for e in errors if e is not None), None)
        if first_error is not None:
            await _cancel_all(running)
            raise first_error

    async def _execute_trigger(self, trigger: Trigger) -> None:
        try:
            produced = await trigger.wait_for_trigger()
        except Exception as e:
            self._logger.exception(
                "Trigger failed; continuing without its components",
                extra=self._extra(component=trigger.name),
            )
            self._emit(
                WorkflowEventType.TRIGGER_FAILED, trigger, error=f"{type(e).__name__}: {e}"
            )
            return
        self.components.insert(produced)

    async def _execute_subflow(self, subflow: Subflow) -> None:
        nested = subflow.workflow
        self._active_subflow = nested
        try:
            await nested.start()
        finally:
            self._active_subflow = None

        self._merge(nested.outputs)
        if nested.state is RunState.FAILED:
            error = getattr(nested, "error", None)
            if isinstance(error, Exception):
                raise error
            raise WorkflowError(f"Subflow {subflow.name!r} failed")

    # Helpers

    def _merge(self, values: Mapping[str, Any]) -> None:
        self._outputs.update(values)

    def _finish(self) -> None:
        self.timer.stop()
        state = self.state
        self.details = ExecutionDetails.from_timer(
            self.timer, state=state, outputs=self._outputs, error=self.error
        )
        self._logger.info(
            "Workflow ended",
            extra=self._extra(state=state.value, duration=self.details.execution_time),
        )
        if state is RunState.COMPLETED:
            self._emit(WorkflowEventType.WORKFLOW_COMPLETED)
        elif state is RunState.FAILED:
            self._emit(
                WorkflowEventType.WORKFLOW_FAILED,
                error=f"{type(self.error).__name__}: {self.error}",
            )

    def _notify(self) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            self._wakeup.set()
        else:
            loop.call_soon_threadsafe(self._wakeup.set)

    def _forward(self, control: str) -> None:
        """Propagate pause/resume/cancel into a subflow that is currently running."""

        nested = self._active_subflow
        method = getattr(nested, control, None)
        if callable(method):
            method()

    def _emit(
        self,
        event_type: WorkflowEventType,
        component: Component | None = None,
        **payload: object,
    ) -> None:
        if self._listener is None:
            return
        if component is not None:
            payload.setdefault("kind", component_kind(component))
        event = WorkflowEvent(
            type=event_type,
            workflow=self.name,
            component=component.name if component is not None else None,
            payload=dict(payload),
        )
        try:
            self._listener(event)
        except Exception:
            self._logger.exception(
                "Workflow event listener failed", extra=self._extra(event=event_type.value)
            )

    def _extra(self, **fields: object) -> dict[str, object]:
        return {"workflow": self.name, "workflow_id": self.id, **fields}


async def _cancel_all(tasks: list[asyncio.Task[None]]) -> None:
    for task in tasks:
        if not task.done():
            task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
