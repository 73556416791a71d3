# watchclub/models/domain/event_domain.py
"""
Calendar event domain models used by the event notifier.
"""

from dataclasses import dataclass
from datetime import time
from enum import StrEnum


class EventType(StrEnum):
    BIRTHDAY = "BIRTHDAY"
    ANNIVERSARY = "ANNIVERSARY"
    DISCORD = "DISCORD"
    IN_PERSON = "IN_PERSON"
    OTHER = "OTHER"


@dataclass(slots=True)
class UpcomingEvent:
    """An events row. `year` of None means the event recurs every year."""

    id: int
    month: int
    day: int
    year: int | None
    time: time | None
    title: str
    description: str | None
    type: EventType

    @property
    def is_recurring(self) -> bool:
        return self.year is None


@dataclass(slots=True, frozen=True)
class DayWindow:
    """A calendar day (and optionally a single hour of it) in the club's local time."""

    year: int
    month: int
    day: int
    hour: int | None = None


def event_matches_day(event: UpcomingEvent, year: int, month: int, day: int) -> bool:
    """Recurring events match on month/day in every year; dated events only in their year."""
    if event.month != month or event.day != day:
        return False
    return event.year is None or event.year == year


def event_matches_window(event: UpcomingEvent, window: DayWindow) -> bool:
    if not event_matches_day(event, window.year, window.month, window.day):
        return False
    if window.hour is None:
        return True
    return event.time is not None and event.time.hour == window.hour
