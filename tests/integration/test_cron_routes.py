"""
Integration tests for the scheduler endpoints: bearer-secret gate and the
combined per-sub-job response.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from watchclub.main import app

client = TestClient(app)

RECOMMENDATION_RUN = "watchclub.routes.cron.daily_recommendation_job.run"
EVENTS_JOB = "watchclub.routes.cron.get_event_notifier_job"


def _events_job(tomorrow=None, hourly=None):
    job = MagicMock()
    job.run_tomorrow = AsyncMock(return_value=tomorrow)
    job.run_current_hour = AsyncMock(return_value=hourly)
    return job


@pytest.mark.parametrize(
    "headers",
    [{}, {"Authorization": "Bearer wrong"}, {"Authorization": "test-cron-secret"}],
)
def test_daily_events_rejects_bad_secret_without_side_effects(cron_secret, headers):
    job = _events_job(tomorrow={"success": True, "eventsCount": 0})
    run = AsyncMock(return_value={"success": True, "type": "movie"})

    with patch(EVENTS_JOB, return_value=job), patch(RECOMMENDATION_RUN, run):
        response = client.get("/api/cron/daily-events", headers=headers)

    assert response.status_code == 401
    job.run_tomorrow.assert_not_awaited()
    run.assert_not_awaited()


def test_unset_secret_refuses_everything(monkeypatch):
    monkeypatch.setattr("watchclub.auth.cron.settings.CRON_SECRET", None)

    response = client.get("/api/cron/hourly-events", headers={"Authorization": "Bearer "})

    assert response.status_code == 401


def test_daily_events_both_succeed(cron_headers):
    job = _events_job(tomorrow={"success": True, "eventsCount": 2})
    run = AsyncMock(return_value={"success": True, "type": "participant"})

    with patch(EVENTS_JOB, return_value=job), patch(RECOMMENDATION_RUN, run):
        response = client.get("/api/cron/daily-events", headers=cron_headers)

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "events": {"success": True, "eventsCount": 2},
        "recommendation": {"success": True, "type": "participant"},
    }


def test_daily_events_partial_failure_reports_both(cron_headers):
    job = _events_job(
        tomorrow={"success": False, "eventsCount": 1, "error": "Telegram API error: 502"}
    )
    run = AsyncMock(return_value={"success": True, "type": "movie"})

    with patch(EVENTS_JOB, return_value=job), patch(RECOMMENDATION_RUN, run):
        response = client.get("/api/cron/daily-events", headers=cron_headers)

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["events"]["error"] == "Telegram API error: 502"
    assert body["recommendation"] == {"success": True, "type": "movie"}


def test_daily_events_crash_in_one_sub_job_still_runs_the_other(cron_headers):
    job = _events_job()
    job.run_tomorrow = AsyncMock(side_effect=RuntimeError("boom"))
    run = AsyncMock(return_value={"success": True, "type": "list"})

    with patch(EVENTS_JOB, return_value=job), patch(RECOMMENDATION_RUN, run):
        response = client.get("/api/cron/daily-events", headers=cron_headers)

    assert response.status_code == 500
    body = response.json()
    assert body["events"] == {"success": False, "eventsCount": 0, "error": "boom"}
    assert body["recommendation"]["type"] == "list"
    run.assert_awaited_once()


def test_daily_events_skipped_counts_as_success(cron_headers):
    job = _events_job(tomorrow={"success": True, "eventsCount": 0, "skipped": True})
    run = AsyncMock(return_value={"success": True, "type": "movie"})

    with patch(EVENTS_JOB, return_value=job), patch(RECOMMENDATION_RUN, run):
        response = client.get("/api/cron/daily-events", headers=cron_headers)

    assert response.status_code == 200
    assert response.json()["events"] == {"success": True, "eventsCount": 0, "skipped": True}


def test_hourly_events_success(cron_headers):
    job = _events_job(hourly={"success": True, "eventsCount": 1})

    with patch(EVENTS_JOB, return_value=job):
        response = client.get("/api/cron/hourly-events", headers=cron_headers)

    assert response.status_code == 200
    assert response.json() == {"success": True, "eventsCount": 1}


def test_hourly_events_failure_returns_error_body(cron_headers):
    job = _events_job(hourly={"success": False, "eventsCount": 0, "error": "db down"})

    with patch(EVENTS_JOB, return_value=job):
        response = client.get("/api/cron/hourly-events", headers=cron_headers)

    assert response.status_code == 500
    assert response.json() == {"error": "db down"}
