from __future__ import annotations

from collections import deque
from collections.abc import Iterable

from .components import Component


class ComponentsManager:
    """Pending run queue plus a log of completed components.

    Components inserted while running go to the front, so whatever a Logic or
    Trigger produces runs before anything that was already queued behind it.
    Only the execution loop touches the manager; it does no locking.
    """

    def __init__(self, initial_components: Iterable[Component] = ()) -> None:
        self._pending: deque[Component] = deque(initial_components)
        self._completed: list[Component] = []

    @property
    def pending(self) -> tuple[Component, ...]:
        return tuple(self._pending)

    @property
    def completed(self) -> tuple[Component, ...]:
        return tuple(self._completed)

    @property
    def is_empty(self) -> bool:
        return not self._pending

    def __len__(self) -> int:
        return len(self._pending)

    def remove_first(self) -> Component | None:
        if not self._pending:
            return None
        return self._pending.popleft()

    def insert(self, components: Iterable[Component]) -> None:
        """Prepend `components`, keeping their relative order."""

        self._pending.extendleft(reversed(list(components)))

    def complete(self, component: Component) -> None:
        self._completed.append(component)
