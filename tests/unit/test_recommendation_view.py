"""
Tests for composing the daily recommendation read model and its Redis cache.
"""

import json
from datetime import UTC, date, datetime

import pytest

from watchclub.models.domain.recommendation_domain import Category, Curator, RecommendationView
from watchclub.repositories.recommendation_repository import RecommendationRepository, compose_view
from watchclub.services import recommendation_service
from watchclub.services.recommendation_service import cache_key, seconds_until_day_ends

DAY = date(2025, 3, 14)


def _row(**overrides):
    row = {
        "date": DAY,
        "type": "movie",
        "target_id": 1,
        "curator_name": None,
        "curator_image": None,
        "metadata": {},
    }
    row.update(overrides)
    return row


def test_movie_without_stamp_has_no_curator():
    view = compose_view(
        _row(movie_id=1, movie_title="Alien", movie_poster_url=None, movie_mam_rank=4)
    )

    assert view.type is Category.MOVIE
    assert view.curator is None
    assert view.item["title"] == "Alien"


def test_movie_poster_falls_back_to_enriched_metadata():
    view = compose_view(
        _row(
            movie_id=1,
            movie_title="Alien",
            movie_poster_url=None,
            metadata={"posterUrl": "https://image.tmdb.org/alien.jpg"},
        )
    )

    assert view.item["posterUrl"] == "https://image.tmdb.org/alien.jpg"


def test_stamped_curator_wins_over_list_creator():
    view = compose_view(
        _row(
            type="list",
            curator_name="Ana",
            curator_image="ana.png",
            list_id=2,
            list_name="Noir",
            list_creator_name="Bruno",
        )
    )

    assert view.curator == Curator(name="Ana", image="ana.png")


def test_list_without_creator_is_curated_by_community():
    view = compose_view(_row(type="list", list_id=2, list_name="Noir"))

    assert view.curator.name == "Comunidad"


def test_participant_curates_itself():
    view = compose_view(
        _row(
            type="participant",
            participant_id=5,
            participant_display_name="Caro",
            participant_user_image="caro.png",
            participant_pick_count=12,
        )
    )

    assert view.curator == Curator(name="Caro", image="caro.png")
    assert view.item["pickCount"] == 12


def test_dangling_target_returns_none():
    assert compose_view(_row(type="list", list_id=None)) is None


def test_cache_ttl_runs_to_end_of_utc_day():
    now = datetime(2025, 3, 14, 23, 0, tzinfo=UTC)

    assert seconds_until_day_ends(DAY, now) == 3600
    # Never shorter than a minute
    assert seconds_until_day_ends(DAY, datetime(2025, 3, 14, 23, 59, 50, tzinfo=UTC)) == 60


@pytest.mark.asyncio
async def test_view_is_cached_after_first_read(monkeypatch, fake_redis):
    view = RecommendationView(
        date=DAY,
        type=Category.PARTICIPANT,
        item={"id": 5, "displayName": "Caro"},
        curator=Curator(name="Caro", image=None),
    )
    calls = []

    async def get_view(day):
        calls.append(day)
        return view

    monkeypatch.setattr(RecommendationRepository, "get_recommendation_view", get_view)
    monkeypatch.setattr(recommendation_service, "fast_redis", fake_redis)
    monkeypatch.setattr(recommendation_service.settings, "RECOMMENDATION_CACHE_ENABLED", True)

    first = await recommendation_service.get_daily_recommendation(DAY)
    second = await recommendation_service.get_daily_recommendation(DAY)

    assert first == view
    assert second == view
    assert calls == [DAY]
    assert json.loads(fake_redis.store[cache_key(DAY)])["type"] == "participant"


@pytest.mark.asyncio
async def test_missing_recommendation_is_not_cached(monkeypatch, fake_redis):
    async def get_view(day):
        return None

    monkeypatch.setattr(RecommendationRepository, "get_recommendation_view", get_view)
    monkeypatch.setattr(recommendation_service, "fast_redis", fake_redis)
    monkeypatch.setattr(recommendation_service.settings, "RECOMMENDATION_CACHE_ENABLED", True)

    assert await recommendation_service.get_daily_recommendation(DAY) is None
    assert fake_redis.store == {}


@pytest.mark.asyncio
async def test_unreadable_cache_entry_is_replaced(monkeypatch, fake_redis):
    view = RecommendationView(date=DAY, type=Category.MOVIE, item={"id": 1}, curator=None)

    async def get_view(day):
        return view

    fake_redis.store[cache_key(DAY)] = "{not json"
    monkeypatch.setattr(RecommendationRepository, "get_recommendation_view", get_view)
    monkeypatch.setattr(recommendation_service, "fast_redis", fake_redis)
    monkeypatch.setattr(recommendation_service.settings, "RECOMMENDATION_CACHE_ENABLED", True)

    assert await recommendation_service.get_daily_recommendation(DAY) == view
    assert json.loads(fake_redis.store[cache_key(DAY)])["item"] == {"id": 1}
