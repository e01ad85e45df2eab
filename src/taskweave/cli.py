"""Shortcut module so `python -m taskweave.cli` runs the CLI.

The entrypoint is implemented in `taskweave.orchestrator.main`.
"""

from __future__ import annotations

from taskweave.orchestrator.main import main

__all__ = ["main"]


if __name__ == "__main__":
    raise SystemExit(main())
