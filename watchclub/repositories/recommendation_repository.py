"""
Persistence layer for daily recommendations.

At most one row exists per UTC calendar day. The unique index on
`daily_recommendations(date)` is the only concurrency control: a second
insert for the same day is rejected (never merged or overwritten) and
surfaces as DuplicateRecommendationError so the job can read the winner back.
"""

from datetime import date
from typing import Any

from psycopg.types.json import Jsonb

from watchclub.db.helpers import DatabaseError, fetch_one
from watchclub.infrastructure.observability.logging import get_logger
from watchclub.models.domain.recommendation_domain import (
    Category,
    Curator,
    NewRecommendation,
    Recommendation,
    RecommendationView,
)

logger = get_logger(__name__)

DEFAULT_LIST_CURATOR = "Comunidad"


class DuplicateRecommendationError(DatabaseError):
    """A recommendation already exists for the day."""

    def __init__(self, day: date):
        super().__init__(
            f"Recommendation for {day.isoformat()} already exists",
            operation="create_recommendation",
            recoverable=True,
        )
        self.day = day


class RecommendationRepository:
    """Reads and idempotent inserts for daily_recommendations."""

    SELECT_COLUMNS = """
        id, date, type, target_id, curator_name, curator_image, metadata, created_at
    """

    @classmethod
    def _row_to_recommendation(cls, row: dict | None) -> Recommendation | None:
        if not row:
            return None

        return Recommendation(
            id=row["id"],
            date=row["date"],
            type=Category(row["type"]),
            target_id=row["target_id"],
            curator_name=row.get("curator_name"),
            curator_image=row.get("curator_image"),
            metadata=row.get("metadata") or {},
            created_at=row["created_at"],
        )

    @classmethod
    async def get_recommendation(cls, day: date) -> Recommendation | None:
        query = f"""
            SELECT {cls.SELECT_COLUMNS}
            FROM daily_recommendations
            WHERE date = %s
        """
        row = await fetch_one(query, (day,))
        return cls._row_to_recommendation(row)

    @classmethod
    async def create_recommendation(cls, record: NewRecommendation) -> Recommendation:
        """
        Insert the day's recommendation.

        Raises:
            DuplicateRecommendationError: the day already has a recommendation.
        """
        query = f"""
            INSERT INTO daily_recommendations (
                date, type, target_id, curator_name, curator_image, metadata
            )
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (date) DO NOTHING
            RETURNING {cls.SELECT_COLUMNS}
        """
        row = await fetch_one(
            query,
            (
                record.date,
                record.type.value,
                record.target_id,
                record.curator_name,
                record.curator_image,
                Jsonb(record.metadata),
            ),
        )

        if not row:
            logger.info(
                "Recommendation insert lost the unique date race",
                date=record.date.isoformat(),
                type=record.type.value,
            )
            raise DuplicateRecommendationError(record.date)

        recommendation = cls._row_to_recommendation(row)
        logger.info(
            "Recommendation stored",
            date=record.date.isoformat(),
            type=recommendation.type.value,
            target_id=recommendation.target_id,
        )
        return recommendation

    @classmethod
    async def get_recommendation_view(cls, day: date) -> RecommendationView | None:
        """
        Recommendation for the day composed with its target's display data.

        Returns None when there is no recommendation or its target is gone.
        """
        query = """
            SELECT
                r.date, r.type, r.target_id, r.curator_name, r.curator_image, r.metadata,
                m.id AS movie_id, m.title AS movie_title, m.poster_url AS movie_poster_url,
                m.mam_rank AS movie_mam_rank, m.imdb_id AS movie_imdb_id,
                l.id AS list_id, l.name AS list_name, l.img_url AS list_img_url,
                lu.name AS list_creator_name, lu.image AS list_creator_image,
                p.id AS participant_id, p.display_name AS participant_display_name,
                p.slug AS participant_slug,
                pu.name AS participant_user_name, pu.image AS participant_user_image,
                (
                    SELECT COUNT(*)
                    FROM mam_picks mp
                    WHERE mp.participant_id = p.id AND mp.is_special_mention = false
                ) AS participant_pick_count
            FROM daily_recommendations r
            LEFT JOIN movies m ON r.type = 'movie' AND m.id = r.target_id
            LEFT JOIN lists l ON r.type = 'list' AND l.id = r.target_id
            LEFT JOIN users lu ON lu.id = l.created_by
            LEFT JOIN mam_participants p ON r.type = 'participant' AND p.id = r.target_id
            LEFT JOIN users pu ON pu.id = p.user_id
            WHERE r.date = %s
        """
        row = await fetch_one(query, (day,))
        if not row:
            return None
        return compose_view(row)


def compose_view(row: dict[str, Any]) -> RecommendationView | None:
    """
    Build the read model from a joined row.

    An explicit curator stamp wins. Otherwise lists fall back to their creator
    and participants to themselves; movies have no default curator.
    """
    category = Category(row["type"])
    metadata = row.get("metadata") or {}
    stamped = (
        Curator(name=row["curator_name"], image=row.get("curator_image"))
        if row.get("curator_name")
        else None
    )

    if category is Category.MOVIE:
        if row.get("movie_id") is None:
            return None
        item = {
            "id": row["movie_id"],
            "title": row["movie_title"],
            "posterUrl": row.get("movie_poster_url") or metadata.get("posterUrl"),
            "mamRank": row.get("movie_mam_rank"),
            "imdbId": row.get("movie_imdb_id"),
        }
        curator = stamped

    elif category is Category.LIST:
        if row.get("list_id") is None:
            return None
        item = {
            "id": row["list_id"],
            "name": row["list_name"],
            "imgUrl": row.get("list_img_url"),
        }
        curator = stamped or Curator(
            name=row.get("list_creator_name") or DEFAULT_LIST_CURATOR,
            image=row.get("list_creator_image"),
        )

    else:
        if row.get("participant_id") is None:
            return None
        item = {
            "id": row["participant_id"],
            "displayName": row["participant_display_name"],
            "slug": row.get("participant_slug"),
            "userName": row.get("participant_user_name"),
            "image": row.get("participant_user_image"),
            "pickCount": row.get("participant_pick_count") or 0,
        }
        curator = stamped or Curator(
            name=row["participant_display_name"],
            image=row.get("participant_user_image"),
        )

    return RecommendationView(date=row["date"], type=category, item=item, curator=curator)
