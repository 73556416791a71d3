# watchclub/models/domain/recommendation_domain.py
"""
Recommendation Domain Models
Shapes shared by the selector, the recommendation store and the daily job.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum
from typing import Any


class Category(StrEnum):
    """Content categories a daily recommendation can point at."""

    MOVIE = "movie"
    LIST = "list"
    PARTICIPANT = "participant"


# Index is `seed % 3`. Adding or removing a category breaks historical reproducibility.
CATEGORY_ORDER: tuple[Category, ...] = (Category.MOVIE, Category.LIST, Category.PARTICIPANT)


@dataclass(slots=True, frozen=True)
class DailySelection:
    """Result of running the selector for one calendar day."""

    category: Category
    seed: int


@dataclass(slots=True)
class Recommendation:
    """Represents a daily_recommendations row."""

    id: int
    date: date
    type: Category
    target_id: int
    curator_name: str | None
    curator_image: str | None
    metadata: dict[str, Any]
    created_at: datetime


@dataclass(slots=True)
class NewRecommendation:
    """Insert payload for the recommendation store."""

    date: date
    type: Category
    target_id: int
    curator_name: str | None = None
    curator_image: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class Curator:
    name: str
    image: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "image": self.image}


@dataclass(slots=True)
class RecommendationView:
    """
    Read-side composition of a recommendation with its target's display data.

    `item` carries the category item's presentation fields (camelCase, ready
    for JSON); `curator` is the explicit stamp or the item's natural owner.
    """

    date: date
    type: Category
    item: dict[str, Any]
    curator: Curator | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "type": self.type.value,
            "item": self.item,
            "curator": self.curator.to_dict() if self.curator else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecommendationView":
        curator = data.get("curator")
        return cls(
            date=date.fromisoformat(data["date"]),
            type=Category(data["type"]),
            item=data.get("item") or {},
            curator=Curator(**curator) if curator else None,
        )


# Candidate pool items. Each pool is fetched fresh per computation.


@dataclass(slots=True)
class MovieCandidate:
    id: int
    title: str
    poster_url: str | None
    imdb_id: str | None
    mam_rank: int | None


@dataclass(slots=True)
class ListCandidate:
    id: int
    name: str
    created_by: str | None


@dataclass(slots=True)
class ParticipantCandidate:
    id: int
    display_name: str
    slug: str | None
    user_id: str | None
    pick_count: int = 0
