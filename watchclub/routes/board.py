"""
Board API Routes
"""

from fastapi import APIRouter, Depends, HTTPException, status

from watchclub.auth.verify import auth_dependency
from watchclub.db.helpers import DatabaseError
from watchclub.infrastructure.observability.logging import get_logger
from watchclub.repositories import board_repository

logger = get_logger(__name__)

router = APIRouter(prefix="/api/board", tags=["board"])


@router.get("")
async def list_board_posts(claims: dict = Depends(auth_dependency)):
    """All post-its with their authors."""
    try:
        posts = await board_repository.list_posts()
    except DatabaseError as e:
        logger.error("Failed to load board", user_id=claims.get("sub"), error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load board",
        )
    return [post.to_dict() for post in posts]
