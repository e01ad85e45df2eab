"""CLI entrypoint for the workflow engine.

Runs one of the bundled demo workflows and prints its report.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from pydantic import ValidationError

from taskweave import __version__
from taskweave.orchestrator.config import EngineSettings
from taskweave.orchestrator.demos import DEMOS
from taskweave.orchestrator.logging import configure_logging
from taskweave.orchestrator.workflow import RunState

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="taskweave",
        description="Declarative async workflow engine",
    )
    parser.add_argument("--version", action="version", version=f"taskweave {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    demo = subparsers.add_parser("demo", help="Run a bundled demo workflow and print its report")
    demo.add_argument("name", choices=sorted(DEMOS), help="Demo workflow to run")
    demo.add_argument(
        "--compact",
        action="store_true",
        help="Print child reports as one line each",
    )
    demo.add_argument(
        "--no-outputs",
        action="store_true",
        help="Leave outputs out of the printed report",
    )
    demo.add_argument(
        "--json",
        action="store_true",
        help="Print the report as JSON instead of text",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = EngineSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level, settings.log_format)

    try:
        if args.command == "demo":
            workflow = DEMOS[args.name](settings)
            asyncio.run(workflow.start())
            report = workflow.generate_report()

            if args.json:
                print(json.dumps(report.to_json(), indent=2, ensure_ascii=False))
            else:
                print(report.printed_report(compact=args.compact, show_outputs=not args.no_outputs))
            return 0 if workflow.state is RunState.COMPLETED else 1

        logger.error("Unknown command", extra={"command": args.command})
        return 2

    except Exception:
        logger.exception("Command failed")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
