"""Test configuration and fixtures."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from typing import Any

import pytest

from taskweave.orchestrator.config import EngineSettings
from taskweave.orchestrator.workflow import Task, WorkflowEvent


@pytest.fixture
def settings() -> EngineSettings:
    """Provide engine settings with a short pause poll interval."""
    return EngineSettings(_env_file=None, pause_poll_interval=0.01)


@pytest.fixture
def ran() -> list[str]:
    """Names of task executors in the order they actually ran."""
    return []


@pytest.fixture
def make_task(ran: list[str]) -> Callable[..., Task]:
    """Build a task that records its name in `ran` and returns fixed outputs."""

    def factory(name: str, outputs: dict[str, Any] | None = None, **kwargs: Any) -> Task:
        def run(_inputs: dict[str, Any]) -> dict[str, Any]:
            ran.append(name)
            return dict(outputs if outputs is not None else {"done": True})

        return Task(name, run, **kwargs)

    return factory


@pytest.fixture
def events() -> list[WorkflowEvent]:
    """Events captured by passing `events.append` as a workflow listener."""
    return []


@pytest.fixture
def restore_root_logging() -> Iterator[None]:
    """Undo `configure_logging` changes to the root logger after a test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
