"""
Formatting of calendar events into a single Telegram HTML message.

The club is Spanish speaking, so headings are written in Spanish.
"""

from datetime import date
from html import escape

from watchclub.models.domain.event_domain import EventType, UpcomingEvent

EVENT_ICONS: dict[EventType, str] = {
    EventType.BIRTHDAY: "🎂",
    EventType.ANNIVERSARY: "💕",
    EventType.DISCORD: "💬",
    EventType.IN_PERSON: "👥",
    EventType.OTHER: "📌",
}

WEEKDAYS_ES = ("lunes", "martes", "miércoles", "jueves", "viernes", "sábado", "domingo")
MONTHS_ES = (
    "enero",
    "febrero",
    "marzo",
    "abril",
    "mayo",
    "junio",
    "julio",
    "agosto",
    "septiembre",
    "octubre",
    "noviembre",
    "diciembre",
)


def format_long_date_es(day: date) -> str:
    """e.g. 'viernes, 14 de marzo de 2025'"""
    weekday = WEEKDAYS_ES[day.weekday()]
    return f"{weekday}, {day.day} de {MONTHS_ES[day.month - 1]} de {day.year}"


def tomorrow_heading(day: date) -> str:
    return f"Eventos de mañana - {format_long_date_es(day)}"


def hourly_heading(hour: int) -> str:
    return f"Eventos de las {hour}:00"


def _format_event(event: UpcomingEvent) -> str:
    icon = EVENT_ICONS.get(event.type, EVENT_ICONS[EventType.OTHER])
    time_text = f" ⏰ {event.time.strftime('%H:%M')}" if event.time else ""
    description = escape(event.description or "")
    return f"{icon} <b>{escape(event.title)}</b>{time_text}\n{description}"


def format_event_message(events: list[UpcomingEvent], title: str) -> str:
    """All events under one heading, separated by blank lines."""
    if not events:
        return f"📅 <b>{escape(title)}</b>\n\nNo hay eventos programados."

    body = "\n\n".join(_format_event(event) for event in events)
    return f"📅 <b>{escape(title)}</b>\n\n{body}"
