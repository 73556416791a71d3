"""
Movie Details Backfill Job - fills director/genre for movies from TMDB.

Movies are processed concurrently; outbound TMDB calls share one
RequestThrottle so the batch stays within TMDB's rate allowance. A failing
movie is logged and counted, the rest of the batch carries on.
"""

import time

from watchclub.config import settings
from watchclub.infrastructure.observability.logging import get_logger
from watchclub.jobs.runtime import job_resources
from watchclub.repositories import movie_repository
from watchclub.services.request_throttle import RequestThrottle, process_all
from watchclub.services.tmdb_client import TmdbClient

logger = get_logger(__name__)


class MovieDetailsBackfillJob:
    def __init__(self, batch_size: int = 200):
        self.batch_size = batch_size

    async def run(self, tmdb: TmdbClient | None = None) -> dict:
        """
        Returns:
            dict: {"success": bool, "processed": int, "updated": int, "failed": int}
        """
        start_time = time.time()
        result = {"success": True, "processed": 0, "updated": 0, "failed": 0}

        try:
            movies = await movie_repository.list_movies_missing_details(self.batch_size)
        except Exception as e:
            logger.exception("Could not load movies for backfill")
            return {**result, "success": False, "error": str(e)}

        if not movies:
            logger.info("No movies need details")
            return result

        throttle = RequestThrottle(settings.TMDB_REQUESTS_PER_SECOND)
        owns_client = tmdb is None
        client = tmdb or TmdbClient(throttle=throttle)

        async def backfill_one(movie: dict, _throttle: RequestThrottle) -> bool | None:
            try:
                return await self._backfill_movie(client, movie)
            except Exception as e:
                logger.warning("Movie backfill failed", movie_id=movie["id"], error=str(e))
                return None

        try:
            outcomes = await process_all(movies, backfill_one, throttle)
        finally:
            if owns_client:
                await client.close()

        result["processed"] = len(outcomes)
        result["updated"] = sum(1 for outcome in outcomes if outcome)
        result["failed"] = sum(1 for outcome in outcomes if outcome is None)

        logger.info(
            "Movie details backfill completed",
            duration_seconds=round(time.time() - start_time, 2),
            **{k: v for k, v in result.items() if k != "success"},
        )
        return result

    async def _backfill_movie(self, client: TmdbClient, movie: dict) -> bool:
        tmdb_id = movie.get("tmdb_id")
        if not tmdb_id:
            found = await client.find_by_imdb_id(movie["imdb_id"])
            if not found:
                return False
            tmdb_id = found["tmdbId"]

        details = await client.get_movie_details(tmdb_id)
        return await movie_repository.update_movie_details(
            movie["id"],
            tmdb_id=tmdb_id,
            director=details["director"],
            genre=details["genre"],
        )


movie_details_backfill_job = MovieDetailsBackfillJob()


async def run_movie_details_backfill() -> None:
    """Worker entrypoint."""
    async with job_resources():
        await movie_details_backfill_job.run()
