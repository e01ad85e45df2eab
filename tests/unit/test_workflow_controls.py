"""Unit tests for pause, resume and cancel."""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable
from typing import Any

import pytest

from taskweave.orchestrator.config import EngineSettings
from taskweave.orchestrator.workflow import RunState, Task, Workflow


class Gate:
    """A task executor that blocks until released, recording when it starts."""

    def __init__(self, ran: list[str], name: str) -> None:
        self.ran = ran
        self.name = name
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def __call__(self, _inputs: dict[str, Any]) -> dict[str, Any]:
        self.started.set()
        await self.release.wait()
        self.ran.append(self.name)
        return {"done": True}


@pytest.mark.asyncio
async def test_pause_holds_dispatch_until_resume(
    settings: EngineSettings, make_task: Callable[..., Task], ran: list[str]
) -> None:
    gate = Gate(ran, "A")
    workflow = Workflow(
        "Pausable",
        components=[Task("A", gate), make_task("B"), make_task("C")],
        settings=settings,
    )
    runner = asyncio.create_task(workflow.start())

    await gate.started.wait()
    assert workflow.pause() is True
    gate.release.set()
    await asyncio.sleep(0.05)

    # The in-flight task finishes; nothing new is dispatched.
    assert ran == ["A"]
    assert workflow.state is RunState.PAUSED
    assert [c.name for c in workflow.components.completed] == ["A"]

    assert workflow.resume() is True
    await asyncio.wait_for(runner, timeout=2)

    assert ran == ["A", "B", "C"]
    assert workflow.state is RunState.COMPLETED


@pytest.mark.asyncio
async def test_pause_during_last_component_holds_completion(
    settings: EngineSettings, ran: list[str]
) -> None:
    gate = Gate(ran, "Only")
    workflow = Workflow("Tail", components=[Task("Only", gate)], settings=settings)
    runner = asyncio.create_task(workflow.start())

    await gate.started.wait()
    workflow.pause()
    gate.release.set()
    await asyncio.sleep(0.05)

    assert workflow.state is RunState.PAUSED
    assert not runner.done()

    workflow.resume()
    await asyncio.wait_for(runner, timeout=2)
    assert workflow.state is RunState.COMPLETED


@pytest.mark.asyncio
async def test_resume_wakes_the_loop_without_waiting_for_poll(ran: list[str]) -> None:
    slow_poll = EngineSettings(_env_file=None, pause_poll_interval=30)
    gate = Gate(ran, "A")
    workflow = Workflow(
        "Wakeup",
        components=[Task("A", gate), Task("B", lambda _i: {})],
        settings=slow_poll,
    )
    runner = asyncio.create_task(workflow.start())

    await gate.started.wait()
    workflow.pause()
    gate.release.set()
    await asyncio.sleep(0.02)
    workflow.resume()

    await asyncio.wait_for(runner, timeout=2)
    assert workflow.state is RunState.COMPLETED


@pytest.mark.asyncio
async def test_controls_called_from_another_thread(ran: list[str]) -> None:
    slow_poll = EngineSettings(_env_file=None, pause_poll_interval=30)
    gate = Gate(ran, "A")
    workflow = Workflow(
        "Threaded",
        components=[Task("A", gate), Task("B", lambda _i: {})],
        settings=slow_poll,
    )
    runner = asyncio.create_task(workflow.start())

    await gate.started.wait()
    workflow.pause()
    gate.release.set()
    await asyncio.sleep(0.02)

    thread = threading.Thread(target=workflow.cancel)
    thread.start()
    thread.join()

    await asyncio.wait_for(runner, timeout=2)
    assert workflow.state is RunState.CANCELED


@pytest.mark.asyncio
async def test_cancel_keeps_completed_outputs_only(
    settings: EngineSettings, make_task: Callable[..., Task], ran: list[str]
) -> None:
    gate = Gate(ran, "B")
    workflow = Workflow(
        "Cancelable",
        components=[make_task("A", {"v": 1}), Task("B", gate), make_task("C", {"v": 3})],
        settings=settings,
    )
    runner = asyncio.create_task(workflow.start())

    await gate.started.wait()
    assert workflow.cancel() is True
    gate.release.set()
    await asyncio.wait_for(runner, timeout=2)

    assert workflow.state is RunState.CANCELED
    assert workflow.outputs == {"A.v": 1, "B.done": True}
    assert workflow.error is None
    assert ran == ["A", "B"]
    assert [c.name for c in workflow.components.pending] == ["C"]
    assert workflow.details is not None
    assert workflow.details.state is RunState.CANCELED
    assert workflow.details.error is None


@pytest.mark.asyncio
async def test_cancel_while_paused(settings: EngineSettings, ran: list[str]) -> None:
    gate = Gate(ran, "A")
    workflow = Workflow(
        "PausedThenCanceled",
        components=[Task("A", gate), Task("B", lambda _i: {})],
        settings=settings,
    )
    runner = asyncio.create_task(workflow.start())

    await gate.started.wait()
    workflow.pause()
    gate.release.set()
    await asyncio.sleep(0.02)

    assert workflow.cancel() is True
    await asyncio.wait_for(runner, timeout=2)

    assert workflow.state is RunState.CANCELED
    assert workflow.outputs == {"A.done": True}


@pytest.mark.asyncio
async def test_failure_after_cancel_stays_canceled(settings: EngineSettings) -> None:
    started = asyncio.Event()
    release = asyncio.Event()

    async def fail_late(_inputs: dict[str, Any]) -> dict[str, Any]:
        started.set()
        await release.wait()
        raise RuntimeError("too late")

    workflow = Workflow("LateFailure", components=[Task("Late", fail_late)], settings=settings)
    runner = asyncio.create_task(workflow.start())

    await started.wait()
    workflow.cancel()
    release.set()
    await asyncio.wait_for(runner, timeout=2)

    assert workflow.state is RunState.CANCELED
    assert workflow.error is None


@pytest.mark.asyncio
async def test_cancel_before_start(settings: EngineSettings, ran: list[str]) -> None:
    workflow = Workflow("Never", components=[Task("A", Gate(ran, "A"))], settings=settings)

    assert workflow.cancel() is True
    await workflow.start()

    assert workflow.state is RunState.CANCELED
    assert ran == []
    assert workflow.details is None


@pytest.mark.asyncio
async def test_controls_outside_their_states_are_rejected(settings: EngineSettings) -> None:
    workflow = Workflow("Idle", components=[Task("A", lambda _i: {})], settings=settings)

    assert workflow.pause() is False
    assert workflow.resume() is False

    await workflow.start()

    assert workflow.pause() is False
    assert workflow.resume() is False
    assert workflow.cancel() is False
    assert workflow.state is RunState.COMPLETED


@pytest.mark.asyncio
async def test_asyncio_cancellation_marks_run_canceled(
    settings: EngineSettings, ran: list[str]
) -> None:
    gate = Gate(ran, "A")
    task = Task("A", gate)
    workflow = Workflow("Interrupted", components=[task], settings=settings)
    runner = asyncio.create_task(workflow.start())

    await gate.started.wait()
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner

    assert workflow.state is RunState.CANCELED
    assert workflow.cancellation_token.is_cancelled
    assert task.details is not None
    assert task.details.state is RunState.CANCELED


@pytest.mark.asyncio
async def test_controls_respond_while_a_blocking_task_runs(settings: EngineSettings) -> None:
    started = threading.Event()
    release = threading.Event()

    def blocking(_inputs: dict[str, Any]) -> dict[str, Any]:
        started.set()
        release.wait(timeout=5)
        return {"done": True}

    workflow = Workflow(
        "Blocking",
        components=[Task("Slow", blocking), Task("Next", lambda _i: {})],
        settings=settings,
    )
    runner = asyncio.create_task(workflow.start())

    while not started.is_set():
        await asyncio.sleep(0.005)
    assert workflow.cancel() is True
    assert not runner.done()

    release.set()
    await asyncio.wait_for(runner, timeout=2)

    assert workflow.state is RunState.CANCELED
    assert workflow.outputs == {"Slow.done": True}
