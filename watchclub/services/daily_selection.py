"""
Deterministic daily content selection.

Maps a calendar day to a reproducible "pick of the day": a content category
and an index into that category's candidate pool. There is no randomness
source; the same day and the same pool (contents and order) always give the
same pick.

The seed is the sum of the character codes of the day's `YYYY-MM-DD` form
(UTC). It is a checksum, not a hash. Changing the formula, the date format or
the category order changes every historical pick.
"""

from collections.abc import Sequence
from datetime import UTC, date, datetime
from typing import TypeVar

from watchclub.models.domain.recommendation_domain import (
    CATEGORY_ORDER,
    Category,
    DailySelection,
)

T = TypeVar("T")


class EmptyPoolError(Exception):
    """Raised when a category has no eligible candidates for the day."""

    def __init__(self, category: Category | None = None):
        label = category.value if category else "pool"
        super().__init__(f"Cannot select from empty {label} pool")
        self.category = category


def normalize_to_utc_day(value: datetime | date) -> date:
    """
    Truncate to the UTC calendar day.

    Naive datetimes are taken as UTC; aware ones are converted first.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        return value.astimezone(UTC).date()
    return value


def date_seed(value: datetime | date) -> int:
    day = normalize_to_utc_day(value)
    return sum(ord(char) for char in day.strftime("%Y-%m-%d"))


def content_category(seed: int) -> Category:
    return CATEGORY_ORDER[seed % len(CATEGORY_ORDER)]


def select_daily_content(value: datetime | date) -> DailySelection:
    """Seed and category for the given day."""
    seed = date_seed(value)
    return DailySelection(category=content_category(seed), seed=seed)


def selection_index(pool_size: int, seed: int) -> int:
    if pool_size <= 0:
        raise EmptyPoolError()
    return seed % pool_size


def select_from_pool(pool: Sequence[T], seed: int, category: Category | None = None) -> T:
    """
    Pick `pool[seed % len(pool)]`.

    The pool's order is part of the result: callers must materialize it in a
    fixed order (see the candidate repository).
    """
    if not pool:
        raise EmptyPoolError(category)
    return pool[selection_index(len(pool), seed)]


def fallback_categories(primary: Category) -> list[Category]:
    """The primary category followed by the others in cyclic order."""
    start = CATEGORY_ORDER.index(primary)
    return [CATEGORY_ORDER[(start + i) % len(CATEGORY_ORDER)] for i in range(len(CATEGORY_ORDER))]
