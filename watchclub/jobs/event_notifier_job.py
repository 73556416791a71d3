"""
Event Notifier Job - announces upcoming club events on Telegram.

Two windows, both computed in the club's local time (fixed UTC offset,
EVENTS_UTC_OFFSET_HOURS, default UTC-3):
- tomorrow:     every event falling on the next local calendar day
- current hour: today's events whose time-of-day falls in the current hour

Recurring events (no year) match every year on their month/day.

All matching events go out in ONE message. Zero matches sends nothing and
reports skipped=True. The job never raises; failures come back as
{"success": False, "eventsCount": n, "error": "..."}.
"""

import time
from datetime import UTC, date, datetime, timedelta, timezone

from watchclub.config import settings
from watchclub.infrastructure.observability.logging import get_logger, log_job_result
from watchclub.jobs.runtime import job_resources
from watchclub.models.domain.event_domain import DayWindow, event_matches_window
from watchclub.repositories import event_repository
from watchclub.services.event_message import (
    format_event_message,
    hourly_heading,
    tomorrow_heading,
)
from watchclub.services.telegram_client import TelegramNotifier, UpstreamNotifierError

logger = get_logger(__name__)


def club_now(now: datetime | None = None, offset_hours: int | None = None) -> datetime:
    """Current instant in the club's local time."""
    if offset_hours is None:
        offset_hours = settings.EVENTS_UTC_OFFSET_HOURS
    instant = now or datetime.now(UTC)
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=UTC)
    return instant.astimezone(timezone(timedelta(hours=offset_hours)))


def tomorrow_window(now: datetime | None = None, offset_hours: int | None = None) -> DayWindow:
    tomorrow = club_now(now, offset_hours).date() + timedelta(days=1)
    return DayWindow(year=tomorrow.year, month=tomorrow.month, day=tomorrow.day)


def current_hour_window(now: datetime | None = None, offset_hours: int | None = None) -> DayWindow:
    local = club_now(now, offset_hours)
    return DayWindow(year=local.year, month=local.month, day=local.day, hour=local.hour)


class EventNotifierJob:
    """Finds events in a window and sends them as one batched message."""

    def __init__(self, notifier: TelegramNotifier | None = None):
        self.notifier = notifier or TelegramNotifier()

    async def run_tomorrow(self, now: datetime | None = None) -> dict:
        # One clock read: the queried day and the heading must agree
        window = tomorrow_window(club_now(now))
        local_day = date(window.year, window.month, window.day)
        return await self._run("daily_events", window, tomorrow_heading(local_day))

    async def run_current_hour(self, now: datetime | None = None) -> dict:
        window = current_hour_window(now)
        return await self._run("hourly_events", window, hourly_heading(window.hour))

    async def _run(self, job_name: str, window: DayWindow, title: str) -> dict:
        """
        Returns:
            dict: {"success": bool, "eventsCount": int, "skipped": bool?, "error": str?}
        """
        start_time = time.time()
        events_count = 0

        try:
            candidates = await event_repository.find_events_on_day(
                window.year, window.month, window.day
            )
            events = [event for event in candidates if event_matches_window(event, window)]
            events_count = len(events)

            if not events:
                logger.info("No events in window, nothing to send", job=job_name, window=str(window))
                result = {"success": True, "eventsCount": 0, "skipped": True}
            else:
                await self.notifier.send_message(format_event_message(events, title))
                result = {"success": True, "eventsCount": events_count}

        except UpstreamNotifierError as e:
            logger.error(
                "Event notification delivery failed",
                job=job_name,
                status_code=e.status_code,
                error=str(e),
            )
            result = {"success": False, "eventsCount": events_count, "error": str(e)}
        except Exception as e:
            logger.exception("Event notifier job failed", job=job_name)
            result = {"success": False, "eventsCount": events_count, "error": str(e)}

        log_job_result(job_name, result, duration_ms=(time.time() - start_time) * 1000)
        return result


_event_notifier_job: EventNotifierJob | None = None


def get_event_notifier_job() -> EventNotifierJob:
    """Lazily built so the notifier reads settings at first use."""
    global _event_notifier_job
    if _event_notifier_job is None:
        _event_notifier_job = EventNotifierJob()
    return _event_notifier_job


async def run_daily_events() -> None:
    """Worker entrypoint: announce tomorrow's events."""
    async with job_resources():
        await get_event_notifier_job().run_tomorrow()


async def run_hourly_events() -> None:
    """Worker entrypoint: announce events starting this hour."""
    async with job_resources():
        await get_event_notifier_job().run_current_hour()
