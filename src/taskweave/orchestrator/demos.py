"""Bundled demo workflows used by `taskweave demo`.

Each builder returns a fresh, not-yet-started `Workflow`.
"""

from __future__ import annotations

import asyncio
import statistics
from collections.abc import Callable, Sequence
from typing import Any

from taskweave.orchestrator.config import EngineSettings
from taskweave.orchestrator.workflow import (
    Component,
    ExecutionMode,
    Logic,
    Subflow,
    Task,
    TaskGroup,
    Trigger,
    Workflow,
)

SAFE_THRESHOLD = 75.0
DEFAULT_READINGS: tuple[float, ...] = (68.4, 77.9, 71.2, 80.5, 73.0)


def sequential_demo(settings: EngineSettings | None = None) -> Workflow:
    """Three tasks threading values through `{Name.Key}` references."""

    async def fetch(_inputs: dict[str, Any]) -> dict[str, Any]:
        return {"text": "  Deterministic control flow around non-deterministic work.  "}

    def trim(inputs: dict[str, Any]) -> dict[str, Any]:
        return {"text": str(inputs["text"]).strip()}

    def count(inputs: dict[str, Any]) -> dict[str, Any]:
        words = str(inputs["text"]).split()
        return {"words": len(words), "longest": max(words, key=len)}

    return Workflow(
        "Sequential Demo",
        "Fetch, trim and measure a sentence",
        [
            Task("Fetch", fetch, description="Produce the raw text"),
            Task("Trim", trim, description="Strip whitespace", inputs={"text": "{Fetch.text}"}),
            Task("Count", count, description="Count words", inputs={"text": "{Trim.text}"}),
        ],
        settings=settings,
    )


def parallel_demo(settings: EngineSettings | None = None) -> Workflow:
    """A parallel fan-out over three sources followed by a summary task."""

    def source(name: str, delay: float, value: int) -> Task:
        async def run(_inputs: dict[str, Any]) -> dict[str, Any]:
            await asyncio.sleep(delay)
            return {"value": value}

        return Task(name, run, description=f"Read {name.lower()}")

    def total(inputs: dict[str, Any]) -> dict[str, Any]:
        return {"total": sum(v for v in inputs.values() if isinstance(v, int))}

    return Workflow(
        "Parallel Demo",
        "Fan out to three sources, then add up the results",
        [
            TaskGroup(
                "Sources",
                [source("North", 0.03, 3), source("South", 0.01, 5), source("East", 0.02, 7)],
                mode=ExecutionMode.PARALLEL,
                description="Read all sources concurrently",
            ),
            Task(
                "Total",
                total,
                description="Sum the source values",
                inputs={
                    "north": "{Sources.North.value}",
                    "south": "{Sources.South.value}",
                    "east": "{Sources.East.value}",
                },
            ),
        ],
        settings=settings,
    )


def monitor_demo(
    settings: EngineSettings | None = None,
    *,
    readings: Sequence[float] = DEFAULT_READINGS,
    interval: float = 0.01,
) -> Workflow:
    """A trigger that re-queues a temperature check and itself until readings run out.

    Each check picks one of two subflows depending on the reading; a final
    task summarises the history.
    """

    remaining = list(readings)
    history: list[float] = []
    counts = {"high": 0, "normal": 0}

    def read() -> float:
        value = remaining.pop(0)
        history.append(value)
        return value

    def alert_subflow(temperature: float) -> Subflow:
        counts["high"] += 1
        n = counts["high"]
        return Subflow.build(
            "HighTempAlert",
            "Alert subflow for high temperature",
            [
                Task(
                    "SendAlert",
                    lambda _inputs: {f"alert_{n}": f"Temperature {temperature} is too high"},
                )
            ],
            settings=settings,
        )

    def normal_subflow(temperature: float) -> Subflow:
        counts["normal"] += 1
        n = counts["normal"]
        return Subflow.build(
            "NormalLog",
            "Logging subflow for normal temperature",
            [
                Task(
                    "LogTemperature",
                    lambda _inputs: {f"normal_{n}": f"Temperature {temperature} is normal"},
                )
            ],
            settings=settings,
        )

    def check(temperature: float) -> Logic:
        def choose() -> list[Component]:
            if temperature > SAFE_THRESHOLD:
                return [alert_subflow(temperature)]
            return [normal_subflow(temperature)]

        return Logic("CheckTemperature", choose, description="Pick a subflow for the reading")

    def recheck(attempt: int) -> Trigger:
        async def wait() -> list[Component]:
            await asyncio.sleep(interval)
            if not remaining:
                return []
            return [check(read()), recheck(attempt + 1)]

        return Trigger(f"PeriodicRecheck-{attempt}", wait, description="Re-read the temperature")

    def analyze(_inputs: dict[str, Any]) -> dict[str, Any]:
        if not history:
            return {"analysis": "No temperature data available."}
        return {
            "readings": len(history),
            "average": round(statistics.fmean(history), 2),
            "median": round(statistics.median(history), 2),
            "high": counts["high"],
            "normal": counts["normal"],
        }

    def initial(_inputs: dict[str, Any]) -> dict[str, Any]:
        return {"temperature": read()} if remaining else {}

    def first_check() -> list[Component]:
        if not history:
            return []
        return [check(history[-1])]

    return Workflow(
        "Temperature Monitor",
        "Monitors temperature and runs an alert subflow above a safe threshold",
        [
            Task("ReadTemperature", initial, description="Take the first reading"),
            Logic("InitialCheck", first_check, description="Check the first reading"),
            recheck(1),
            Task("AnalyzeHistory", analyze, description="Summarise all readings"),
        ],
        settings=settings,
    )


DEMOS: dict[str, Callable[[EngineSettings | None], Workflow]] = {
    "sequential": sequential_demo,
    "parallel": parallel_demo,
    "monitor": monitor_demo,
}
