"""
Change-feed value types: raw row notifications coming out of Postgres and the
normalized events republished to stream clients.
"""

import json
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class ChangeType(StrEnum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class RelayStatus(StrEnum):
    """Subscription statuses reported by the transport."""

    SUBSCRIBED = "SUBSCRIBED"
    CHANNEL_ERROR = "CHANNEL_ERROR"
    TIMED_OUT = "TIMED_OUT"
    CLOSED = "CLOSED"


class ConnectionState(StrEnum):
    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    SUBSCRIBED = "SUBSCRIBED"


# Event names seen by stream clients
POST_CREATED = "post-it:created"
POST_UPDATED = "post-it:updated"
POST_DELETED = "post-it:deleted"
RESULTS_UPDATED = "results:updated"
RELAY_STATUS = "relay:status"


@dataclass(slots=True, frozen=True)
class RawChange:
    """
    One row-level notification as sent by the notify_change() trigger.

    The embedded record is NOT trusted as complete (joined fields are missing
    and oversized payloads are reduced to their keys); it is only used to
    identify the row and evaluate filters.
    """

    table: str
    type: ChangeType
    record: dict[str, Any] = field(default_factory=dict)
    old_record: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: str) -> "RawChange":
        """Parse a NOTIFY payload. Raises ValueError on malformed input."""
        try:
            data = json.loads(payload)
            return cls(
                table=data["table"],
                type=ChangeType(data["type"]),
                record=data.get("record") or {},
                old_record=data.get("old_record") or {},
            )
        except (KeyError, TypeError, json.JSONDecodeError) as e:
            raise ValueError(f"Malformed change payload: {e}") from e

    @property
    def row(self) -> dict[str, Any]:
        """The row image filters apply to: the old row for deletes, the new one otherwise."""
        if self.type is ChangeType.DELETE:
            return self.old_record
        return self.record

    @property
    def identifier(self) -> Any:
        return self.row.get("id")


@dataclass(slots=True, frozen=True)
class ChangeEvent:
    """A normalized event delivered to relay listeners."""

    event: str
    data: Any

    def to_sse(self) -> str:
        return f"event: {self.event}\ndata: {json.dumps(self.data, default=str)}\n\n"


def parse_filter(expression: str) -> tuple[str, str]:
    """
    Parse a `column=eq.value` filter.

    >>> parse_filter("edition_id=eq.5")
    ('edition_id', '5')
    """
    column, sep, predicate = expression.partition("=")
    if not sep or not column or not predicate.startswith("eq."):
        raise ValueError(f"Unsupported filter expression: {expression!r}")
    return column.strip(), predicate[len("eq.") :]


@dataclass(slots=True, frozen=True)
class TableBinding:
    """Interest in one table, optionally narrowed by an equality filter."""

    table: str
    filter: str | None = None

    def __post_init__(self):
        if self.filter is not None:
            parse_filter(self.filter)

    def matches(self, change: RawChange) -> bool:
        if change.table != self.table:
            return False
        if self.filter is None:
            return True

        column, expected = parse_filter(self.filter)
        value = change.row.get(column)
        return value is not None and str(value) == expected
