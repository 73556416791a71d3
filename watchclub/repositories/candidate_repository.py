"""
Candidate pools for the daily recommendation.

Pools are fetched fresh for every computation and never cached. Their ORDER BY
is load-bearing: the selector picks `pool[seed % len(pool)]`, so reordering a
query changes which item a given day picks.

    movies        MAM top 100, mam_rank ASC, id ASC
    lists         created_at DESC, id DESC
    participants  at least one regular (non special-mention) pick, id ASC
"""

from watchclub.db.helpers import fetch_all, fetch_one
from watchclub.models.domain.recommendation_domain import (
    Curator,
    ListCandidate,
    MovieCandidate,
    ParticipantCandidate,
)

MAM_TOP_LIMIT = 100


async def list_movie_candidates() -> list[MovieCandidate]:
    query = """
        SELECT id, title, poster_url, imdb_id, mam_rank
        FROM movies
        WHERE mam_rank IS NOT NULL AND mam_rank <= %s
        ORDER BY mam_rank ASC, id ASC
    """
    rows = await fetch_all(query, (MAM_TOP_LIMIT,))
    return [
        MovieCandidate(
            id=row["id"],
            title=row["title"],
            poster_url=row.get("poster_url"),
            imdb_id=row.get("imdb_id"),
            mam_rank=row.get("mam_rank"),
        )
        for row in rows
    ]


async def list_list_candidates() -> list[ListCandidate]:
    query = """
        SELECT id, name, created_by
        FROM lists
        ORDER BY created_at DESC, id DESC
    """
    rows = await fetch_all(query)
    return [
        ListCandidate(id=row["id"], name=row["name"], created_by=row.get("created_by"))
        for row in rows
    ]


async def list_participant_candidates() -> list[ParticipantCandidate]:
    query = """
        SELECT p.id, p.display_name, p.slug, p.user_id, COUNT(mp.id) AS pick_count
        FROM mam_participants p
        JOIN mam_picks mp ON mp.participant_id = p.id AND mp.is_special_mention = false
        GROUP BY p.id, p.display_name, p.slug, p.user_id
        ORDER BY p.id ASC
    """
    rows = await fetch_all(query)
    return [
        ParticipantCandidate(
            id=row["id"],
            display_name=row["display_name"],
            slug=row.get("slug"),
            user_id=row.get("user_id"),
            pick_count=row.get("pick_count") or 0,
        )
        for row in rows
    ]


async def get_top_reviewer(movie_id: int) -> Curator | None:
    """Author of the highest scored written review of a movie, if any."""
    query = """
        SELECT COALESCE(u.name, p.display_name) AS name, u.image
        FROM mam_picks mp
        JOIN mam_participants p ON p.id = mp.participant_id
        LEFT JOIN users u ON u.id = p.user_id
        WHERE mp.movie_id = %s
          AND mp.review IS NOT NULL
          AND mp.is_special_mention = false
        ORDER BY mp.score DESC NULLS LAST, mp.id ASC
        LIMIT 1
    """
    row = await fetch_one(query, (movie_id,))
    if not row or not row.get("name"):
        return None
    return Curator(name=row["name"], image=row.get("image"))


async def get_user_identity(user_id: str) -> Curator | None:
    row = await fetch_one("SELECT name, image FROM users WHERE id = %s", (user_id,))
    if not row:
        return None
    return Curator(name=row.get("name") or "", image=row.get("image"))
