"""
Movie rows that need metadata from TMDB.
"""

from watchclub.db.helpers import execute_query, fetch_all


async def list_movies_missing_details(limit: int = 200) -> list[dict]:
    query = """
        SELECT id, title, imdb_id, tmdb_id
        FROM movies
        WHERE imdb_id IS NOT NULL
          AND (director IS NULL OR genre IS NULL)
        ORDER BY id ASC
        LIMIT %s
    """
    return await fetch_all(query, (limit,))


async def update_movie_details(
    movie_id: int,
    *,
    tmdb_id: int | None,
    director: str | None,
    genre: str | None,
) -> bool:
    query = """
        UPDATE movies
        SET tmdb_id = COALESCE(%s, tmdb_id),
            director = COALESCE(%s, director),
            genre = COALESCE(%s, genre),
            updated_at = NOW()
        WHERE id = %s
    """
    affected = await execute_query(query, (tmdb_id, director, genre, movie_id))
    return affected > 0
