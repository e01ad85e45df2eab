#!/usr/bin/env python3
"""Programmatic workflow example.

This demonstrates using the engine directly:

* declare tasks that reference each other's outputs
* branch with a Logic component
* pause and resume a running workflow from the host
* print the final report
"""

from __future__ import annotations

import argparse
import asyncio
from typing import Any, Sequence

from taskweave.orchestrator.config import EngineSettings
from taskweave.orchestrator.logging import configure_logging
from taskweave.orchestrator.workflow import Logic, Task, Workflow


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a small workflow (programmatic example).")
    parser.add_argument("--order-total", type=float, default=120.0, help="Order total to price")
    parser.add_argument(
        "--pause-seconds",
        type=float,
        default=0.2,
        help="How long to hold the workflow paused mid-run",
    )
    return parser.parse_args(argv)


async def _run(order_total: float, pause_seconds: float) -> Workflow:
    async def load_order(_inputs: dict[str, Any]) -> dict[str, Any]:
        await asyncio.sleep(0.05)
        return {"total": order_total}

    def apply_discount(inputs: dict[str, Any]) -> dict[str, Any]:
        return {"total": round(inputs["total"] * 0.9, 2)}

    def confirm(inputs: dict[str, Any]) -> dict[str, Any]:
        return {"message": f"Charged {inputs['total']:.2f}"}

    def pricing() -> list[Task]:
        if order_total >= 100:
            return [Task("Discount", apply_discount, inputs={"total": "{LoadOrder.total}"})]
        return []

    workflow = Workflow(
        "Checkout",
        "Price and confirm an order",
        [
            Task("LoadOrder", load_order),
            Logic("Pricing", pricing),
            Task("Confirm", confirm, inputs={"total": "{LoadOrder.total}"}),
        ],
        settings=EngineSettings(),
    )

    runner = asyncio.create_task(workflow.start())
    await asyncio.sleep(0.01)
    if workflow.pause():
        await asyncio.sleep(pause_seconds)
        workflow.resume()
    await runner
    return workflow


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = EngineSettings()
    configure_logging(settings.log_level, settings.log_format)

    workflow = asyncio.run(_run(args.order_total, args.pause_seconds))

    print(workflow.generate_report().printed_report(compact=True))
    return 0 if workflow.error is None else 1


if __name__ == "__main__":
    raise SystemExit(main())
