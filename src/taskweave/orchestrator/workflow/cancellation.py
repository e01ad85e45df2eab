"""Cooperative cancellation for code running inside a workflow.

The engine never interrupts an executor that is already running. Long-lived
task bodies and trigger waiters can instead poll `cancellation_requested()`
and return early once the owning workflow has been canceled.
"""

from __future__ import annotations

import threading
from contextvars import ContextVar, Token


class CancellationToken:
    def __init__(self) -> None:
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()


_current_token: ContextVar[CancellationToken | None] = ContextVar(
    "taskweave_cancellation_token", default=None
)


def current_token() -> CancellationToken | None:
    """Token of the innermost workflow running in this context, if any."""

    return _current_token.get()


def cancellation_requested() -> bool:
    token = _current_token.get()
    return token is not None and token.is_cancelled


def bind_token(token: CancellationToken) -> Token[CancellationToken | None]:
    """Bind `token` for the current context; returns the reset handle."""

    return _current_token.set(token)


def unbind_token(handle: Token[CancellationToken | None]) -> None:
    _current_token.reset(handle)
