"""
TMDB (The Movie Database) client.

Every request goes through a shared RequestThrottle so that batch jobs stay
under TMDB's ~40 requests / 10 seconds allowance.
"""

from typing import Any

import httpx

from watchclub.config import settings
from watchclub.infrastructure.observability.logging import get_logger
from watchclub.services.request_throttle import RequestThrottle

logger = get_logger(__name__)

TMDB_API_BASE_URL = "https://api.themoviedb.org/3"
TMDB_IMAGE_BASE_URL = "https://image.tmdb.org/t/p/original"
REQUEST_TIMEOUT = 15  # seconds


class MovieMetadataError(Exception):
    """TMDB was unreachable, answered non-2xx, or returned unusable data."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TmdbClient:
    """Async TMDB lookups by IMDb id and TMDB id."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        throttle: RequestThrottle | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key or settings.TMDB_API_KEY
        self.throttle = throttle or RequestThrottle(settings.TMDB_REQUESTS_PER_SECOND)
        self._client = httpx.AsyncClient(
            base_url=TMDB_API_BASE_URL,
            timeout=httpx.Timeout(REQUEST_TIMEOUT),
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "TmdbClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _get(self, path: str, params: dict[str, Any]) -> dict:
        if not self.api_key:
            raise MovieMetadataError("TMDB_API_KEY not configured")

        query = {"api_key": self.api_key, **params}
        try:
            response = await self.throttle.execute(self._client.get, path, params=query)
        except httpx.RequestError as e:
            raise MovieMetadataError(f"TMDB unreachable: {e}") from e

        if not response.is_success:
            raise MovieMetadataError(
                f"TMDB API error on {path}: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise MovieMetadataError(
                f"TMDB returned a non-JSON body on {path}", status_code=response.status_code
            ) from e
        if not isinstance(data, dict):
            raise MovieMetadataError(
                f"TMDB returned an unexpected body on {path}", status_code=response.status_code
            )
        return data

    async def find_by_imdb_id(self, imdb_id: str) -> dict[str, Any] | None:
        """Basic movie data for an IMDb id, or None when TMDB has no match."""
        data = await self._get(f"/find/{imdb_id}", {"external_source": "imdb_id"})
        results = data.get("movie_results") or []
        if not results:
            logger.info("TMDB has no movie for IMDb id", imdb_id=imdb_id)
            return None

        movie = results[0]
        if not isinstance(movie, dict) or movie.get("id") is None:
            raise MovieMetadataError(f"TMDB match for {imdb_id} has no id")

        poster_path = movie.get("poster_path")
        return {
            "tmdbId": movie["id"],
            "title": movie.get("title"),
            "releaseDate": movie.get("release_date"),
            "originalLanguage": movie.get("original_language"),
            "originalTitle": movie.get("original_title"),
            "posterUrl": f"{TMDB_IMAGE_BASE_URL}{poster_path}" if poster_path else "",
            "imdbId": imdb_id,
        }

    async def get_movie_details(self, tmdb_id: int) -> dict[str, str | None]:
        """Director and genres (comma separated) for a TMDB movie id."""
        data = await self._get(f"/movie/{tmdb_id}", {"append_to_response": "credits"})

        genres = [g["name"] for g in data.get("genres", []) if g.get("name")]
        crew = (data.get("credits") or {}).get("crew", [])
        director = next((c.get("name") for c in crew if c.get("job") == "Director"), None)

        return {"director": director, "genre": ", ".join(genres) or None}
