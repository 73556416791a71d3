"""
Board posts composed with their author, the authoritative shape the change
feed re-fetches after a notification.
"""

from watchclub.db.helpers import fetch_all, fetch_one
from watchclub.models.domain.board_domain import BoardAuthor, BoardPost

POST_SELECT = """
    SELECT
        bp.id, bp.title, bp.description, bp.grid_x, bp.grid_y,
        bp.created_at, bp.updated_at, bp.created_by,
        u.id AS author_id, u.name AS author_name,
        u.email AS author_email, u.image AS author_image
    FROM board_posts bp
    LEFT JOIN users u ON u.id = bp.created_by
"""


def _row_to_post(row: dict) -> BoardPost:
    author = None
    if row.get("author_id") is not None:
        author = BoardAuthor(
            id=str(row["author_id"]),
            name=row.get("author_name"),
            email=row.get("author_email"),
            image=row.get("author_image"),
        )

    return BoardPost(
        id=str(row["id"]),
        title=row["title"],
        description=row.get("description") or "",
        grid_x=row["grid_x"],
        grid_y=row["grid_y"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        created_by=str(row["created_by"]),
        created_by_user=author,
    )


async def list_posts() -> list[BoardPost]:
    rows = await fetch_all(POST_SELECT + " ORDER BY bp.grid_y ASC, bp.grid_x ASC")
    return [_row_to_post(row) for row in rows]


async def get_post(post_id: str) -> BoardPost | None:
    row = await fetch_one(POST_SELECT + " WHERE bp.id = %s", (post_id,))
    return _row_to_post(row) if row else None
