"""
Read path for the daily recommendation shown on the home page.

The composed view is cached in Redis until the end of its UTC day. Empty
states ("no recommendation yet") are never cached, so a recommendation
computed later in the day shows up on the next read.
"""

import json
from datetime import UTC, date, datetime, timedelta

from watchclub.config import settings
from watchclub.infrastructure.observability.logging import get_logger
from watchclub.models.domain.recommendation_domain import RecommendationView
from watchclub.repositories.recommendation_repository import RecommendationRepository
from watchclub.services.daily_selection import normalize_to_utc_day
from watchclub.services.redis_client import fast_redis

logger = get_logger(__name__)

CACHE_KEY_PREFIX = "daily_recommendation"
MIN_CACHE_TTL_SECONDS = 60


def cache_key(day: date) -> str:
    return f"{CACHE_KEY_PREFIX}:{day.isoformat()}"


def seconds_until_day_ends(day: date, now: datetime | None = None) -> int:
    now = now or datetime.now(UTC)
    end_of_day = datetime(day.year, day.month, day.day, tzinfo=UTC) + timedelta(days=1)
    return max(int((end_of_day - now).total_seconds()), MIN_CACHE_TTL_SECONDS)


async def get_daily_recommendation(value: datetime | date | None = None) -> RecommendationView | None:
    """Recommendation view for the day (default today, UTC), or None."""
    day = normalize_to_utc_day(value or datetime.now(UTC))
    key = cache_key(day)

    if settings.RECOMMENDATION_CACHE_ENABLED:
        cached = await fast_redis.get(key)
        if cached:
            try:
                return RecommendationView.from_dict(json.loads(cached))
            except (ValueError, KeyError, TypeError) as e:
                logger.warning("Discarding unreadable cached recommendation", key=key, error=str(e))
                await fast_redis.delete(key)

    view = await RecommendationRepository.get_recommendation_view(day)
    if view is None:
        return None

    if settings.RECOMMENDATION_CACHE_ENABLED:
        await fast_redis.set_with_ttl(key, json.dumps(view.to_dict()), seconds_until_day_ends(day))

    return view
