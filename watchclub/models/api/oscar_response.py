# watchclub/models/api/oscar_response.py
"""
Oscar results API response models.
"""

from datetime import datetime

from pydantic import BaseModel


class LeaderboardEntryResponse(BaseModel):
    rank: int
    userId: str
    userName: str
    userImage: str | None = None
    score: int | None = None
    submittedAt: datetime
    isWinner: bool


class NomineeShare(BaseModel):
    nomineeId: int
    nomineeName: str
    filmTitle: str | None = None
    count: int
    percentage: int


class CategoryStatsResponse(BaseModel):
    id: int
    name: str
    slug: str
    order: int
    winnerId: int | None = None
    winner: dict | None = None
    totalVotes: int
    topPicks: list[NomineeShare]


class OscarResultsResponse(BaseModel):
    """Snapshot served to the results page and pushed by the change feed."""

    leaderboard: list[LeaderboardEntryResponse]
    stats: list[CategoryStatsResponse]
