"""
Reconciliation contract for relay consumers.

Events are "state is at least this new", not an ordered log. Consumers keep
a map keyed by id and replace entries wholesale; aggregates are replaced as a
whole snapshot.
"""

from typing import Any

from watchclub.realtime.events import (
    POST_CREATED,
    POST_DELETED,
    POST_UPDATED,
    RESULTS_UPDATED,
    ChangeEvent,
)


class KeyedState:
    def __init__(self, key: str = "id"):
        self.key = key
        self._items: dict[Any, dict] = {}
        self.snapshot: dict | None = None

    def load(self, items: list[dict]) -> None:
        """Initial state from a regular read."""
        self._items = {item[self.key]: item for item in items}

    def apply(self, event: ChangeEvent) -> None:
        if event.event in (POST_CREATED, POST_UPDATED):
            self._items[event.data[self.key]] = event.data
        elif event.event == POST_DELETED:
            self._items.pop(event.data[self.key], None)
        elif event.event == RESULTS_UPDATED:
            self.snapshot = event.data

    def get(self, key: Any) -> dict | None:
        return self._items.get(key)

    def items(self) -> list[dict]:
        return list(self._items.values())

    def __len__(self) -> int:
        return len(self._items)
