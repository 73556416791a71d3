"""
Tests for the event notifier: local-time windows, recurring event matching,
batching into one message and failure reporting.
"""

from datetime import UTC, datetime, time, timedelta, timezone

import pytest

from watchclub.jobs.event_notifier_job import (
    EventNotifierJob,
    club_now,
    current_hour_window,
    tomorrow_window,
)
from watchclub.models.domain.event_domain import (
    DayWindow,
    EventType,
    UpcomingEvent,
    event_matches_day,
    event_matches_window,
)
from watchclub.services.telegram_client import UpstreamNotifierError

REPO_PATH = "watchclub.jobs.event_notifier_job.event_repository.find_events_on_day"

club_tz = timezone(timedelta(hours=-3))


def _event(
    id=1, month=3, day=15, year=None, at=None, title="Cumple de Ana", type=EventType.BIRTHDAY
):
    return UpcomingEvent(
        id=id,
        month=month,
        day=day,
        year=year,
        time=at,
        title=title,
        description=None,
        type=type,
    )


def _serve(monkeypatch, events):
    requested = []

    async def find_events_on_day(year, month, day):
        requested.append((year, month, day))
        return [e for e in events if event_matches_day(e, year, month, day)]

    monkeypatch.setattr(REPO_PATH, find_events_on_day)
    return requested


@pytest.mark.parametrize("year", [2020, 2025, 2031])
def test_recurring_event_matches_every_year(year):
    assert event_matches_day(_event(year=None), year, 3, 15)


def test_dated_event_matches_only_its_year():
    event = _event(year=2025)

    assert event_matches_day(event, 2025, 3, 15)
    assert not event_matches_day(event, 2026, 3, 15)


def test_hour_window_requires_event_time_in_that_hour():
    window = DayWindow(2025, 3, 15, hour=21)

    assert event_matches_window(_event(at=time(21, 30)), window)
    assert not event_matches_window(_event(at=time(22, 0)), window)
    assert not event_matches_window(_event(at=None), window)


def test_tomorrow_is_computed_in_club_time():
    # 01:30 UTC on the 15th is still the 14th at UTC-3, so tomorrow is the 15th
    now = datetime(2025, 3, 15, 1, 30, tzinfo=UTC)

    assert tomorrow_window(now, offset_hours=-3) == DayWindow(2025, 3, 15)


def test_current_hour_is_local():
    now = datetime(2025, 3, 15, 1, 30, tzinfo=UTC)

    assert current_hour_window(now, offset_hours=-3) == DayWindow(2025, 3, 14, hour=22)


def test_tomorrow_rolls_over_year_end():
    now = datetime(2025, 12, 31, 15, 0, tzinfo=UTC)

    assert tomorrow_window(now, offset_hours=-3) == DayWindow(2026, 1, 1)


@pytest.mark.asyncio
async def test_events_are_sent_in_one_message(monkeypatch, fake_notifier):
    _serve(
        monkeypatch,
        [
            _event(id=1, title="Cumple de Ana"),
            _event(id=2, title="Noche de cine", type=EventType.DISCORD, at=time(21, 0)),
            _event(id=3, day=16, title="Otro día"),
        ],
    )
    now = datetime(2025, 3, 14, 15, 0, tzinfo=UTC)

    result = await EventNotifierJob(notifier=fake_notifier).run_tomorrow(now)

    assert result == {"success": True, "eventsCount": 2}
    assert len(fake_notifier.messages) == 1
    message = fake_notifier.messages[0]
    assert "Cumple de Ana" in message
    assert "Noche de cine" in message
    assert "Otro día" not in message
    assert "sábado, 15 de marzo de 2025" in message


@pytest.mark.asyncio
async def test_tomorrow_heading_and_query_share_one_clock_read(monkeypatch, fake_notifier):
    requested = _serve(monkeypatch, [_event(month=3, day=15), _event(id=2, month=3, day=16)])
    # The wall clock crosses local midnight between two reads
    readings = iter(
        [
            datetime(2025, 3, 14, 23, 59, 59, tzinfo=club_tz),
            datetime(2025, 3, 15, 0, 0, 1, tzinfo=club_tz),
        ]
    )
    real_club_now = club_now

    def ticking_club_now(now=None, offset_hours=None):
        if now is None:
            return next(readings)
        return real_club_now(now, offset_hours)

    monkeypatch.setattr("watchclub.jobs.event_notifier_job.club_now", ticking_club_now)

    result = await EventNotifierJob(notifier=fake_notifier).run_tomorrow()

    assert result == {"success": True, "eventsCount": 1}
    assert requested == [(2025, 3, 15)]
    assert "sábado, 15 de marzo de 2025" in fake_notifier.messages[0]


@pytest.mark.asyncio
async def test_no_events_skips_sending(monkeypatch, fake_notifier):
    requested = _serve(monkeypatch, [])
    now = datetime(2025, 3, 14, 15, 0, tzinfo=UTC)

    result = await EventNotifierJob(notifier=fake_notifier).run_tomorrow(now)

    assert result == {"success": True, "eventsCount": 0, "skipped": True}
    assert fake_notifier.messages == []
    assert requested == [(2025, 3, 15)]


@pytest.mark.asyncio
async def test_hourly_run_filters_by_hour(monkeypatch, fake_notifier):
    _serve(
        monkeypatch,
        [
            _event(id=1, month=3, day=14, at=time(12, 15), title="Almuerzo"),
            _event(id=2, month=3, day=14, at=time(13, 0), title="Más tarde"),
        ],
    )
    # 15:20 UTC is 12:20 at UTC-3
    now = datetime(2025, 3, 14, 15, 20, tzinfo=UTC)

    result = await EventNotifierJob(notifier=fake_notifier).run_current_hour(now)

    assert result == {"success": True, "eventsCount": 1}
    assert "Eventos de las 12:00" in fake_notifier.messages[0]
    assert "Más tarde" not in fake_notifier.messages[0]


@pytest.mark.asyncio
async def test_notifier_failure_is_reported(monkeypatch, fake_notifier):
    _serve(monkeypatch, [_event()])
    fake_notifier.error = UpstreamNotifierError("Telegram API error: 502", 502)
    now = datetime(2025, 3, 14, 15, 0, tzinfo=UTC)

    result = await EventNotifierJob(notifier=fake_notifier).run_tomorrow(now)

    assert result == {"success": False, "eventsCount": 1, "error": "Telegram API error: 502"}


@pytest.mark.asyncio
async def test_database_failure_is_reported(monkeypatch, fake_notifier):
    async def broken(year, month, day):
        raise RuntimeError("connection refused")

    monkeypatch.setattr(REPO_PATH, broken)

    result = await EventNotifierJob(notifier=fake_notifier).run_tomorrow(
        datetime(2025, 3, 14, 15, 0, tzinfo=UTC)
    )

    assert result["success"] is False
    assert result["eventsCount"] == 0
    assert "connection refused" in result["error"]
    assert fake_notifier.messages == []


