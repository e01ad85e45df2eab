"""Unit tests for nested workflows."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from taskweave.orchestrator.config import EngineSettings
from taskweave.orchestrator.workflow import RunState, Subflow, Task, Workflow


@pytest.mark.asyncio
async def test_subflow_outputs_merge_unprefixed(
    settings: EngineSettings, make_task: Callable[..., Task], ran: list[str]
) -> None:
    sub = Subflow.build("Inner", components=[make_task("In", {"v": 1})], settings=settings)
    workflow = Workflow(
        "Outer",
        components=[make_task("Before"), sub, make_task("After")],
        settings=settings,
    )

    await workflow.start()

    assert workflow.state is RunState.COMPLETED
    assert ran == ["Before", "In", "After"]
    assert workflow.outputs == {"Before.done": True, "In.v": 1, "After.done": True}
    assert sub.workflow.state is RunState.COMPLETED
    assert sub.details is not None
    assert sub.details.state is RunState.COMPLETED


@pytest.mark.asyncio
async def test_parent_tasks_can_reference_subflow_outputs(settings: EngineSettings) -> None:
    sub = Subflow.build(
        "Inner", components=[Task("In", lambda _i: {"v": 20})], settings=settings
    )
    workflow = Workflow(
        "Outer",
        components=[sub, Task("Use", lambda i: {"v": i["x"] + 1}, inputs={"x": "{In.v}"})],
        settings=settings,
    )

    await workflow.start()

    assert workflow.outputs["Use.v"] == 21


@pytest.mark.asyncio
async def test_subflow_failure_fails_parent_with_partial_outputs(
    settings: EngineSettings, make_task: Callable[..., Task], ran: list[str]
) -> None:
    def fail(_inputs: dict[str, Any]) -> dict[str, Any]:
        raise PermissionError("denied")

    sub = Subflow.build(
        "Inner",
        components=[make_task("In", {"v": 1}), Task("Fail", fail)],
        settings=settings,
    )
    workflow = Workflow("Outer", components=[sub, make_task("After")], settings=settings)

    await workflow.start()

    assert workflow.state is RunState.FAILED
    assert isinstance(workflow.error, PermissionError)
    assert workflow.error is sub.workflow.error
    assert workflow.outputs == {"In.v": 1}
    assert ran == ["In"]


@pytest.mark.asyncio
async def test_canceling_parent_cancels_running_subflow(
    settings: EngineSettings, make_task: Callable[..., Task], ran: list[str]
) -> None:
    started = asyncio.Event()
    release = asyncio.Event()

    async def block(_inputs: dict[str, Any]) -> dict[str, Any]:
        started.set()
        await release.wait()
        return {"v": 1}

    sub = Subflow.build(
        "Inner",
        components=[Task("Block", block), make_task("InnerNext")],
        settings=settings,
    )
    workflow = Workflow("Outer", components=[sub, make_task("After")], settings=settings)
    runner = asyncio.create_task(workflow.start())

    await started.wait()
    assert workflow.cancel() is True
    release.set()
    await asyncio.wait_for(runner, timeout=2)

    assert workflow.state is RunState.CANCELED
    assert sub.workflow.state is RunState.CANCELED
    assert ran == []
    assert workflow.outputs == {"Block.v": 1}


@pytest.mark.asyncio
async def test_pausing_parent_pauses_running_subflow(
    settings: EngineSettings, make_task: Callable[..., Task], ran: list[str]
) -> None:
    started = asyncio.Event()
    release = asyncio.Event()

    async def block(_inputs: dict[str, Any]) -> dict[str, Any]:
        started.set()
        await release.wait()
        return {}

    sub = Subflow.build(
        "Inner", components=[Task("Block", block), make_task("InnerNext")], settings=settings
    )
    workflow = Workflow("Outer", components=[sub], settings=settings)
    runner = asyncio.create_task(workflow.start())

    await started.wait()
    workflow.pause()
    release.set()
    await asyncio.sleep(0.05)

    assert sub.workflow.state is RunState.PAUSED
    assert ran == []

    workflow.resume()
    await asyncio.wait_for(runner, timeout=2)

    assert ran == ["InnerNext"]
    assert workflow.state is RunState.COMPLETED


@pytest.mark.asyncio
async def test_subflow_canceled_on_its_own_does_not_fail_parent(
    settings: EngineSettings, make_task: Callable[..., Task], ran: list[str]
) -> None:
    started = asyncio.Event()
    release = asyncio.Event()

    async def block(_inputs: dict[str, Any]) -> dict[str, Any]:
        started.set()
        await release.wait()
        return {}

    sub = Subflow.build(
        "Inner", components=[Task("Block", block), make_task("InnerNext")], settings=settings
    )
    workflow = Workflow("Outer", components=[sub, make_task("After")], settings=settings)
    runner = asyncio.create_task(workflow.start())

    await started.wait()
    sub.workflow.cancel()
    release.set()
    await asyncio.wait_for(runner, timeout=2)

    assert sub.workflow.state is RunState.CANCELED
    assert workflow.state is RunState.COMPLETED
    assert ran == ["After"]


@pytest.mark.asyncio
async def test_subflow_accepts_any_runnable(settings: EngineSettings) -> None:
    class External:
        name = "External"
        description = "not a Workflow"

        def __init__(self) -> None:
            self.state = RunState.NOT_STARTED
            self.outputs: dict[str, Any] = {}

        async def start(self) -> None:
            self.outputs = {"External.ready": True}
            self.state = RunState.COMPLETED

    workflow = Workflow("Outer", components=[Subflow(External())], settings=settings)

    await workflow.start()

    assert workflow.state is RunState.COMPLETED
    assert workflow.outputs == {"External.ready": True}
