# watchclub/models/domain/oscar_domain.py
"""
Oscar prediction game domain models and the pure results computations.

The leaderboard and per-category stats are recomputed from scratch on every
request; the change feed pushes the whole snapshot, never a diff.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

TOP_PICKS_PER_CATEGORY = 3


@dataclass(slots=True)
class BallotRow:
    user_id: str
    user_name: str | None
    user_image: str | None
    score: int | None
    submitted_at: datetime


@dataclass(slots=True)
class LeaderboardEntry:
    rank: int
    user_id: str
    user_name: str
    user_image: str | None
    score: int
    submitted_at: datetime
    is_winner: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "rank": self.rank,
            "userId": self.user_id,
            "userName": self.user_name,
            "userImage": self.user_image,
            "score": self.score,
            "submittedAt": self.submitted_at.isoformat(),
            "isWinner": self.is_winner,
        }


@dataclass(slots=True)
class CategoryRow:
    id: int
    name: str
    slug: str
    order: int
    winner_id: int | None


@dataclass(slots=True)
class PickRow:
    category_id: int
    nominee_id: int
    nominee_name: str
    film_title: str | None


@dataclass(slots=True)
class NomineeRow:
    id: int
    name: str
    film_title: str | None


@dataclass(slots=True)
class CategoryPredictionStats:
    id: int
    name: str
    slug: str
    order: int
    winner_id: int | None
    winner: dict[str, Any] | None
    total_votes: int
    top_picks: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "order": self.order,
            "winnerId": self.winner_id,
            "winner": self.winner,
            "totalVotes": self.total_votes,
            "topPicks": self.top_picks,
        }


def _percentage(count: int, total: int) -> int:
    # Half-up rounding, so 2.5% shows as 3%
    if total <= 0:
        return 0
    return math.floor(count / total * 100 + 0.5)


def build_leaderboard(ballots: list[BallotRow]) -> list[LeaderboardEntry]:
    """
    Rank ballots by score (missing scores last), ties broken by submission time.

    Uses competition ranking (1, 1, 3). Winners are every ballot holding the
    top score, and only once at least one ballot has been scored.
    """
    ordered = sorted(
        ballots,
        key=lambda b: (b.score is None, -(b.score or 0), b.submitted_at),
    )
    scored = [b.score for b in ordered if b.score is not None]
    max_score = max(scored) if scored else -1

    entries: list[LeaderboardEntry] = []
    current_rank = 1
    for index, ballot in enumerate(ordered):
        score = ballot.score or 0
        if index > 0:
            previous = ordered[index - 1].score
            previous = -1 if previous is None else previous
            if score < previous:
                current_rank = index + 1

        entries.append(
            LeaderboardEntry(
                rank=current_rank,
                user_id=ballot.user_id,
                user_name=ballot.user_name or "Usuario",
                user_image=ballot.user_image,
                score=score,
                submitted_at=ballot.submitted_at,
                is_winner=max_score >= 0 and score == max_score,
            )
        )

    return entries


def build_prediction_stats(
    categories: list[CategoryRow],
    picks: list[PickRow],
    winners: list[NomineeRow],
) -> list[CategoryPredictionStats]:
    """Per-category vote totals and the three most picked nominees."""
    winner_by_id = {
        n.id: {"nomineeId": n.id, "nomineeName": n.name, "filmTitle": n.film_title}
        for n in winners
    }

    counts_by_category: dict[int, dict[int, dict[str, Any]]] = {}
    for pick in picks:
        counts = counts_by_category.setdefault(pick.category_id, {})
        entry = counts.get(pick.nominee_id)
        if entry:
            entry["count"] += 1
        else:
            counts[pick.nominee_id] = {
                "name": pick.nominee_name,
                "filmTitle": pick.film_title,
                "count": 1,
            }

    result = []
    for category in sorted(categories, key=lambda c: c.order):
        counts = counts_by_category.get(category.id, {})
        total_votes = sum(v["count"] for v in counts.values())
        # Stable sort keeps first-seen order among equal counts
        top = sorted(counts.items(), key=lambda item: -item[1]["count"])[:TOP_PICKS_PER_CATEGORY]

        result.append(
            CategoryPredictionStats(
                id=category.id,
                name=category.name,
                slug=category.slug,
                order=category.order,
                winner_id=category.winner_id,
                winner=(
                    winner_by_id.get(category.winner_id)
                    if category.winner_id is not None
                    else None
                ),
                total_votes=total_votes,
                top_picks=[
                    {
                        "nomineeId": nominee_id,
                        "nomineeName": v["name"],
                        "filmTitle": v["filmTitle"],
                        "count": v["count"],
                        "percentage": _percentage(v["count"], total_votes),
                    }
                    for nominee_id, v in top
                ],
            )
        )

    return result
