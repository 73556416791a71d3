"""
Daily Recommendation Job - pre-computes the "pick of the day".

Triggered by the external scheduler through GET /api/cron/daily-events (or
manually through the worker CLI). One run:

    CHECK_EXISTING -> already stored?  done, report its type
    COMPUTE        -> seed -> category -> fetch that category's pool -> pick
    PERSIST        -> insert; losing the unique-date race counts as success

Design:
- Idempotent: the scheduler may call it several times a day.
- Never raises: every outcome is a {"success", "type"?, "error"?} dict.
- Only the chosen category's pool is fetched. If it is empty the next
  categories are tried in cyclic order (movie -> list -> participant).
"""

import time
from collections.abc import Callable
from datetime import UTC, date, datetime
from typing import Any

from watchclub.config import settings
from watchclub.infrastructure.observability.logging import get_logger, log_job_result
from watchclub.jobs.runtime import job_resources
from watchclub.models.domain.recommendation_domain import (
    Category,
    MovieCandidate,
    NewRecommendation,
)
from watchclub.repositories import candidate_repository
from watchclub.repositories.recommendation_repository import (
    DEFAULT_LIST_CURATOR,
    DuplicateRecommendationError,
    RecommendationRepository,
)
from watchclub.services.daily_selection import (
    EmptyPoolError,
    fallback_categories,
    normalize_to_utc_day,
    select_daily_content,
    select_from_pool,
    selection_index,
)
from watchclub.services.tmdb_client import MovieMetadataError, TmdbClient

logger = get_logger(__name__)

JOB_NAME = "daily_recommendation"
NO_CANDIDATES_ERROR = "No candidates available for any category"


class DailyRecommendationJob:
    """Computes and stores at most one recommendation per UTC day."""

    def __init__(self, tmdb_client_factory: Callable[[], TmdbClient] = TmdbClient):
        self._tmdb_client_factory = tmdb_client_factory

    async def run(self, now: datetime | date | None = None) -> dict:
        """
        Run the job for the UTC day containing `now` (default: current time).

        Returns:
            dict: {"success": bool, "type": str?, "error": str?}
        """
        day = normalize_to_utc_day(now or datetime.now(UTC))
        start_time = time.time()

        try:
            result = await self._run_for_day(day)
        except Exception as e:
            logger.exception("Daily recommendation job failed", date=day.isoformat())
            result = {"success": False, "error": str(e)}

        log_job_result(JOB_NAME, result, duration_ms=(time.time() - start_time) * 1000)
        return result

    async def _run_for_day(self, day: date) -> dict:
        existing = await RecommendationRepository.get_recommendation(day)
        if existing:
            logger.info(
                "Recommendation already computed for day",
                date=day.isoformat(),
                type=existing.type.value,
            )
            return {"success": True, "type": existing.type.value}

        record = await self._compute(day)
        if record is None:
            return {"success": False, "error": NO_CANDIDATES_ERROR}

        try:
            stored = await RecommendationRepository.create_recommendation(record)
        except DuplicateRecommendationError:
            # A concurrent run stored first; converge on its record
            winner = await RecommendationRepository.get_recommendation(day)
            if winner is None:
                return {"success": False, "error": "Recommendation conflict but no stored record"}
            return {"success": True, "type": winner.type.value}

        return {"success": True, "type": stored.type.value}

    async def _compute(self, day: date) -> NewRecommendation | None:
        selection = select_daily_content(day)
        logger.info(
            "Daily selection computed",
            date=day.isoformat(),
            seed=selection.seed,
            category=selection.category.value,
        )

        for category in fallback_categories(selection.category):
            try:
                record = await self._build_for_category(category, day, selection.seed)
            except EmptyPoolError:
                logger.warning(
                    "Candidate pool empty, trying next category",
                    date=day.isoformat(),
                    category=category.value,
                )
                continue

            record.metadata["requestedType"] = selection.category.value
            return record

        logger.error("Every candidate pool is empty", date=day.isoformat())
        return None

    async def _build_for_category(
        self, category: Category, day: date, seed: int
    ) -> NewRecommendation:
        if category is Category.MOVIE:
            return await self._build_movie(day, seed)
        if category is Category.LIST:
            return await self._build_list(day, seed)
        return await self._build_participant(day, seed)

    @staticmethod
    def _selection_metadata(pool_size: int, seed: int) -> dict[str, Any]:
        return {"seed": seed, "poolSize": pool_size, "index": selection_index(pool_size, seed)}

    async def _build_movie(self, day: date, seed: int) -> NewRecommendation:
        pool = await candidate_repository.list_movie_candidates()
        movie = select_from_pool(pool, seed, Category.MOVIE)
        metadata = self._selection_metadata(len(pool), seed)

        # No default curator for movies: only the top reviewer, when there is one
        curator = await candidate_repository.get_top_reviewer(movie.id)

        if not movie.poster_url:
            metadata.update(await self._enrich_movie(movie))

        return NewRecommendation(
            date=day,
            type=Category.MOVIE,
            target_id=movie.id,
            curator_name=curator.name if curator else None,
            curator_image=curator.image if curator else None,
            metadata=metadata,
        )

    async def _enrich_movie(self, movie: MovieCandidate) -> dict[str, Any]:
        """Poster from TMDB for a movie stored without one. Failures are not fatal."""
        if not movie.imdb_id or not settings.TMDB_API_KEY:
            return {}

        try:
            async with self._tmdb_client_factory() as tmdb:
                found = await tmdb.find_by_imdb_id(movie.imdb_id)
        except MovieMetadataError as e:
            logger.warning(
                "Movie enrichment failed, storing recommendation without it",
                movie_id=movie.id,
                status_code=e.status_code,
                error=str(e),
            )
            return {"enrichmentError": str(e)}

        if found and found.get("posterUrl"):
            return {"posterUrl": found["posterUrl"]}
        return {}

    async def _build_list(self, day: date, seed: int) -> NewRecommendation:
        pool = await candidate_repository.list_list_candidates()
        selected = select_from_pool(pool, seed, Category.LIST)

        creator = None
        if selected.created_by:
            creator = await candidate_repository.get_user_identity(selected.created_by)

        return NewRecommendation(
            date=day,
            type=Category.LIST,
            target_id=selected.id,
            curator_name=(creator.name if creator and creator.name else DEFAULT_LIST_CURATOR),
            curator_image=creator.image if creator else None,
            metadata=self._selection_metadata(len(pool), seed),
        )

    async def _build_participant(self, day: date, seed: int) -> NewRecommendation:
        pool = await candidate_repository.list_participant_candidates()
        participant = select_from_pool(pool, seed, Category.PARTICIPANT)

        image = None
        if participant.user_id:
            identity = await candidate_repository.get_user_identity(participant.user_id)
            image = identity.image if identity else None

        return NewRecommendation(
            date=day,
            type=Category.PARTICIPANT,
            target_id=participant.id,
            curator_name=participant.display_name,
            curator_image=image,
            metadata=self._selection_metadata(len(pool), seed),
        )


# Singleton instance used by the cron route and the worker
daily_recommendation_job = DailyRecommendationJob()


async def run_daily_recommendation() -> None:
    """Worker entrypoint: compute today's recommendation once."""
    async with job_resources():
        await daily_recommendation_job.run()
