"""
Tests for the daily recommendation job: idempotency, the unique-date race,
empty pool fallback and failure reporting.
"""

from datetime import UTC, date, datetime

import httpx
import pytest

from watchclub.jobs.daily_recommendation_job import (
    NO_CANDIDATES_ERROR,
    DailyRecommendationJob,
)
from watchclub.models.domain.recommendation_domain import (
    Category,
    Curator,
    ListCandidate,
    MovieCandidate,
    NewRecommendation,
    ParticipantCandidate,
    Recommendation,
)
from watchclub.repositories.recommendation_repository import (
    DuplicateRecommendationError,
    RecommendationRepository,
)
from watchclub.services.request_throttle import RequestThrottle
from watchclub.services.tmdb_client import MovieMetadataError, TmdbClient

PARTICIPANT_DAY = date(2025, 3, 14)  # seed 491 -> participant
MOVIE_DAY = date(2025, 3, 15)  # seed 492 -> movie
LIST_DAY = date(2025, 3, 16)  # seed 493 -> list

JOB_MODULE = "watchclub.jobs.daily_recommendation_job"


class FakeRecommendationStore:
    """In-memory daily_recommendations with the unique date constraint."""

    def __init__(self):
        self.rows: dict[date, Recommendation] = {}
        self.inserts = 0

    async def get_recommendation(self, day: date) -> Recommendation | None:
        return self.rows.get(day)

    async def create_recommendation(self, record: NewRecommendation) -> Recommendation:
        self.inserts += 1
        if record.date in self.rows:
            raise DuplicateRecommendationError(record.date)
        row = Recommendation(
            id=len(self.rows) + 1,
            date=record.date,
            type=record.type,
            target_id=record.target_id,
            curator_name=record.curator_name,
            curator_image=record.curator_image,
            metadata=dict(record.metadata),
            created_at=datetime.now(UTC),
        )
        self.rows[record.date] = row
        return row


@pytest.fixture
def store(monkeypatch):
    fake = FakeRecommendationStore()
    monkeypatch.setattr(RecommendationRepository, "get_recommendation", fake.get_recommendation)
    monkeypatch.setattr(
        RecommendationRepository, "create_recommendation", fake.create_recommendation
    )
    return fake


def _pools(monkeypatch, movies=None, lists=None, participants=None):
    async def movie_pool():
        return list(movies or [])

    async def list_pool():
        return list(lists or [])

    async def participant_pool():
        return list(participants or [])

    async def top_reviewer(movie_id):
        return Curator(name="Ana", image="ana.png")

    async def user_identity(user_id):
        return Curator(name=f"User {user_id}", image=f"{user_id}.png")

    monkeypatch.setattr(f"{JOB_MODULE}.candidate_repository.list_movie_candidates", movie_pool)
    monkeypatch.setattr(f"{JOB_MODULE}.candidate_repository.list_list_candidates", list_pool)
    monkeypatch.setattr(
        f"{JOB_MODULE}.candidate_repository.list_participant_candidates", participant_pool
    )
    monkeypatch.setattr(f"{JOB_MODULE}.candidate_repository.get_top_reviewer", top_reviewer)
    monkeypatch.setattr(f"{JOB_MODULE}.candidate_repository.get_user_identity", user_identity)


def _participants(count=3):
    return [
        ParticipantCandidate(id=i, display_name=f"Participant {i}", slug=f"p{i}", user_id=None)
        for i in range(1, count + 1)
    ]


def _movies(count=4, poster_url="poster.jpg"):
    return [
        MovieCandidate(
            id=i, title=f"Movie {i}", poster_url=poster_url, imdb_id=f"tt{i:07d}", mam_rank=i
        )
        for i in range(1, count + 1)
    ]


@pytest.mark.asyncio
async def test_second_run_same_day_is_a_noop(monkeypatch, store):
    _pools(monkeypatch, participants=_participants())
    job = DailyRecommendationJob()

    first = await job.run(PARTICIPANT_DAY)
    second = await job.run(PARTICIPANT_DAY)

    assert first == {"success": True, "type": "participant"}
    assert second == first
    assert len(store.rows) == 1
    assert store.inserts == 1


@pytest.mark.asyncio
async def test_pick_uses_seed_modulo_pool(monkeypatch, store):
    participants = _participants(3)
    _pools(monkeypatch, participants=participants)

    await DailyRecommendationJob().run(PARTICIPANT_DAY)

    row = store.rows[PARTICIPANT_DAY]
    assert row.type is Category.PARTICIPANT
    assert row.target_id == participants[491 % 3].id
    assert row.curator_name == participants[491 % 3].display_name
    assert row.metadata == {
        "seed": 491,
        "poolSize": 3,
        "index": 491 % 3,
        "requestedType": "participant",
    }


@pytest.mark.asyncio
async def test_lost_insert_race_reads_back_winner(monkeypatch):
    existing = Recommendation(
        id=7,
        date=PARTICIPANT_DAY,
        type=Category.MOVIE,
        target_id=3,
        curator_name=None,
        curator_image=None,
        metadata={},
        created_at=datetime.now(UTC),
    )
    reads = []

    async def get_recommendation(day):
        reads.append(day)
        # Nothing on the first check; the concurrent run commits before our insert
        return None if len(reads) == 1 else existing

    async def create_recommendation(record):
        raise DuplicateRecommendationError(record.date)

    monkeypatch.setattr(RecommendationRepository, "get_recommendation", get_recommendation)
    monkeypatch.setattr(RecommendationRepository, "create_recommendation", create_recommendation)
    _pools(monkeypatch, participants=_participants())

    result = await DailyRecommendationJob().run(PARTICIPANT_DAY)

    assert result == {"success": True, "type": "movie"}
    assert len(reads) == 2


@pytest.mark.asyncio
async def test_empty_primary_pool_falls_back_to_next_category(monkeypatch, store):
    _pools(monkeypatch, movies=_movies(4), participants=[])

    result = await DailyRecommendationJob().run(PARTICIPANT_DAY)

    assert result == {"success": True, "type": "movie"}
    row = store.rows[PARTICIPANT_DAY]
    assert row.metadata["requestedType"] == "participant"
    assert row.metadata["poolSize"] == 4
    assert row.curator_name == "Ana"


@pytest.mark.asyncio
async def test_all_pools_empty_reports_failure(monkeypatch, store):
    _pools(monkeypatch)

    result = await DailyRecommendationJob().run(MOVIE_DAY)

    assert result == {"success": False, "error": NO_CANDIDATES_ERROR}
    assert store.rows == {}


@pytest.mark.asyncio
async def test_store_failure_is_returned_not_raised(monkeypatch):
    async def broken(day):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(RecommendationRepository, "get_recommendation", broken)

    result = await DailyRecommendationJob().run(MOVIE_DAY)

    assert result["success"] is False
    assert "database unavailable" in result["error"]


@pytest.mark.asyncio
async def test_list_without_creator_uses_community_curator(monkeypatch, store):
    lists = [ListCandidate(id=i, name=f"List {i}", created_by=None) for i in range(1, 6)]
    _pools(monkeypatch, lists=lists)

    result = await DailyRecommendationJob().run(LIST_DAY)

    assert result == {"success": True, "type": "list"}
    row = store.rows[LIST_DAY]
    assert row.target_id == lists[493 % 5].id
    assert row.curator_name == "Comunidad"


class FakeTmdb:
    def __init__(self, found=None, error=None):
        self.found = found
        self.error = error
        self.lookups = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return None

    async def find_by_imdb_id(self, imdb_id):
        self.lookups.append(imdb_id)
        if self.error:
            raise self.error
        return self.found


@pytest.mark.asyncio
async def test_movie_without_poster_is_enriched(monkeypatch, store):
    monkeypatch.setattr(f"{JOB_MODULE}.settings.TMDB_API_KEY", "key")
    movies = _movies(4, poster_url=None)
    _pools(monkeypatch, movies=movies)
    tmdb = FakeTmdb(found={"tmdbId": 10, "posterUrl": "https://image.tmdb.org/p.jpg"})

    result = await DailyRecommendationJob(tmdb_client_factory=lambda: tmdb).run(MOVIE_DAY)

    assert result == {"success": True, "type": "movie"}
    assert tmdb.lookups == [movies[492 % 4].imdb_id]
    assert store.rows[MOVIE_DAY].metadata["posterUrl"] == "https://image.tmdb.org/p.jpg"


@pytest.mark.asyncio
async def test_enrichment_failure_does_not_fail_job(monkeypatch, store):
    monkeypatch.setattr(f"{JOB_MODULE}.settings.TMDB_API_KEY", "key")
    _pools(monkeypatch, movies=_movies(4, poster_url=None))
    tmdb = FakeTmdb(error=MovieMetadataError("TMDB API error", status_code=503))

    result = await DailyRecommendationJob(tmdb_client_factory=lambda: tmdb).run(MOVIE_DAY)

    assert result == {"success": True, "type": "movie"}
    assert store.rows[MOVIE_DAY].metadata["enrichmentError"] == "TMDB API error"
    assert "posterUrl" not in store.rows[MOVIE_DAY].metadata


def _tmdb_answering(response: httpx.Response):
    def factory():
        return TmdbClient(
            "key",
            throttle=RequestThrottle(100.0),
            transport=httpx.MockTransport(lambda request: response),
        )

    return factory


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>gateway</html>", headers={"content-type": "text/html"}),
        httpx.Response(200, json={"movie_results": [{"title": "No id"}]}),
        httpx.Response(200, json=["not", "an", "object"]),
    ],
)
async def test_unusable_tmdb_answer_still_stores_recommendation(monkeypatch, store, response):
    monkeypatch.setattr(f"{JOB_MODULE}.settings.TMDB_API_KEY", "key")
    _pools(monkeypatch, movies=_movies(4, poster_url=None))

    result = await DailyRecommendationJob(tmdb_client_factory=_tmdb_answering(response)).run(
        MOVIE_DAY
    )

    assert result == {"success": True, "type": "movie"}
    row = store.rows[MOVIE_DAY]
    assert row.type is Category.MOVIE
    assert "enrichmentError" in row.metadata
    assert "posterUrl" not in row.metadata


@pytest.mark.asyncio
async def test_movie_with_poster_skips_enrichment(monkeypatch, store):
    monkeypatch.setattr(f"{JOB_MODULE}.settings.TMDB_API_KEY", "key")
    _pools(monkeypatch, movies=_movies(4))
    tmdb = FakeTmdb(found={"posterUrl": "unused"})

    await DailyRecommendationJob(tmdb_client_factory=lambda: tmdb).run(MOVIE_DAY)

    assert tmdb.lookups == []
