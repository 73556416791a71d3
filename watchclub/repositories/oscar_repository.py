"""
Oscar prediction game reads: leaderboard and per-category prediction stats.
"""

import asyncio

from watchclub.db.helpers import fetch_all
from watchclub.models.domain.oscar_domain import (
    BallotRow,
    CategoryPredictionStats,
    CategoryRow,
    LeaderboardEntry,
    NomineeRow,
    PickRow,
    build_leaderboard,
    build_prediction_stats,
)


async def get_leaderboard(edition_id: int) -> list[LeaderboardEntry]:
    query = """
        SELECT b.user_id, u.name AS user_name, u.image AS user_image,
               b.score, b.submitted_at
        FROM oscar_ballots b
        JOIN users u ON u.id = b.user_id
        WHERE b.edition_id = %s
        ORDER BY b.score DESC NULLS LAST, b.submitted_at ASC
    """
    rows = await fetch_all(query, (edition_id,))
    ballots = [
        BallotRow(
            user_id=str(row["user_id"]),
            user_name=row.get("user_name"),
            user_image=row.get("user_image"),
            score=row.get("score"),
            submitted_at=row["submitted_at"],
        )
        for row in rows
    ]
    return build_leaderboard(ballots)


async def get_prediction_stats(edition_id: int) -> list[CategoryPredictionStats]:
    categories_query = """
        SELECT id, name, slug, "order", winner_id
        FROM oscar_categories
        WHERE edition_id = %s
        ORDER BY "order" ASC
    """
    picks_query = """
        SELECT p.category_id, p.nominee_id, n.name AS nominee_name, n.film_title
        FROM oscar_picks p
        JOIN oscar_ballots b ON b.id = p.ballot_id
        JOIN oscar_nominees n ON n.id = p.nominee_id
        WHERE b.edition_id = %s
        ORDER BY p.id ASC
    """
    category_rows, pick_rows = await asyncio.gather(
        fetch_all(categories_query, (edition_id,)),
        fetch_all(picks_query, (edition_id,)),
    )

    categories = [
        CategoryRow(
            id=row["id"],
            name=row["name"],
            slug=row["slug"],
            order=row["order"],
            winner_id=row.get("winner_id"),
        )
        for row in category_rows
    ]
    picks = [
        PickRow(
            category_id=row["category_id"],
            nominee_id=row["nominee_id"],
            nominee_name=row["nominee_name"],
            film_title=row.get("film_title"),
        )
        for row in pick_rows
    ]

    winner_ids = [c.winner_id for c in categories if c.winner_id is not None]
    winners: list[NomineeRow] = []
    if winner_ids:
        rows = await fetch_all(
            "SELECT id, name, film_title FROM oscar_nominees WHERE id = ANY(%s)",
            (winner_ids,),
        )
        winners = [
            NomineeRow(id=row["id"], name=row["name"], film_title=row.get("film_title"))
            for row in rows
        ]

    return build_prediction_stats(categories, picks, winners)


async def get_results_snapshot(edition_id: int) -> dict:
    """Leaderboard and stats fetched concurrently, as served by /api/oscars/results."""
    leaderboard, stats = await asyncio.gather(
        get_leaderboard(edition_id),
        get_prediction_stats(edition_id),
    )
    return {
        "leaderboard": [entry.to_dict() for entry in leaderboard],
        "stats": [entry.to_dict() for entry in stats],
    }
