"""Input resolution and output namespacing.

A task input whose value is exactly ``"{Name.Key}"`` is a reference to the
workflow output stored under ``"Name.Key"``. References are resolved when the
task is dispatched, not when it is declared.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

REFERENCE_PATTERN = re.compile(r"\{([^{}]+\.[^{}]+)\}")


def reference_key(value: object) -> str | None:
    """Return the referenced output key, or None if `value` is a literal."""

    if not isinstance(value, str):
        return None
    match = REFERENCE_PATTERN.fullmatch(value)
    return match.group(1) if match else None


def resolve_inputs(inputs: Mapping[str, Any], outputs: Mapping[str, Any]) -> dict[str, Any]:
    resolved: dict[str, Any] = {}
    for name, value in inputs.items():
        key = reference_key(value)
        # Missing references resolve to None; the task decides if that is fatal.
        resolved[name] = outputs.get(key) if key is not None else value
    return resolved


def namespaced(prefix: str, outputs: Mapping[str, Any]) -> dict[str, Any]:
    return {f"{prefix}.{key}": value for key, value in outputs.items()}
