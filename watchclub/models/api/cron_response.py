# watchclub/models/api/cron_response.py
"""
Cron API response models.
Every scheduled route answers with one of these, success or not.
"""

from pydantic import BaseModel, Field


class EventsJobResult(BaseModel):
    """Outcome of one event notifier run."""

    success: bool
    eventsCount: int = Field(default=0, description="Events matched in the window")
    skipped: bool | None = Field(default=None, description="True when nothing was sent")
    error: str | None = None


class RecommendationJobResult(BaseModel):
    """Outcome of one daily recommendation run."""

    success: bool
    type: str | None = Field(default=None, description="movie | list | participant")
    error: str | None = None


class DailyCronResponse(BaseModel):
    """Combined daily run: events for tomorrow plus today's recommendation."""

    success: bool
    events: EventsJobResult
    recommendation: RecommendationJobResult


class HourlyEventsResponse(BaseModel):
    success: bool
    eventsCount: int
    skipped: bool | None = None
