# watchclub/models/domain/board_domain.py
"""
Shared board (post-it wall) domain models.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(slots=True)
class BoardAuthor:
    id: str
    name: str | None
    email: str | None
    image: str | None


@dataclass(slots=True)
class BoardPost:
    """A board_posts row composed with its author, as served by GET /api/board."""

    id: str
    title: str
    description: str  # serialized rich-text editor state
    grid_x: int
    grid_y: int
    created_at: datetime
    updated_at: datetime
    created_by: str
    created_by_user: BoardAuthor | None = None

    def to_dict(self) -> dict[str, Any]:
        author = self.created_by_user
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "gridX": self.grid_x,
            "gridY": self.grid_y,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "createdBy": self.created_by,
            "createdByUser": (
                {
                    "id": author.id,
                    "name": author.name,
                    "email": author.email,
                    "image": author.image,
                }
                if author
                else None
            ),
        }
