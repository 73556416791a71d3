"""
Read access to calendar events for the notifier.
"""

from watchclub.db.helpers import fetch_all
from watchclub.models.domain.event_domain import EventType, UpcomingEvent


def _row_to_event(row: dict) -> UpcomingEvent:
    try:
        event_type = EventType(row["type"])
    except ValueError:
        event_type = EventType.OTHER

    return UpcomingEvent(
        id=row["id"],
        month=row["month"],
        day=row["day"],
        year=row.get("year"),
        time=row.get("time"),
        title=row["title"],
        description=row.get("description"),
        type=event_type,
    )


async def find_events_on_day(year: int, month: int, day: int) -> list[UpcomingEvent]:
    """
    Events on the given day: dated ones for that year plus annual (year IS NULL) ones.
    """
    query = """
        SELECT id, month, day, year, time, title, description, type
        FROM events
        WHERE month = %s
          AND day = %s
          AND (year = %s OR year IS NULL)
        ORDER BY time ASC NULLS LAST, id ASC
    """
    rows = await fetch_all(query, (month, day, year))
    return [_row_to_event(row) for row in rows]
