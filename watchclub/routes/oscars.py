"""
Oscar prediction game API Routes
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from watchclub.auth.verify import auth_dependency
from watchclub.db.helpers import DatabaseError
from watchclub.infrastructure.observability.logging import get_logger
from watchclub.models.api.oscar_response import OscarResultsResponse
from watchclub.repositories import oscar_repository

logger = get_logger(__name__)

router = APIRouter(prefix="/api/oscars", tags=["oscars"])


def parse_edition_id(raw: str | None) -> int:
    """A positive integer, otherwise 400."""
    try:
        edition_id = int(raw) if raw is not None else None
    except ValueError:
        edition_id = None

    if edition_id is None or edition_id <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="editionId must be a positive integer",
        )
    return edition_id


@router.get("/results", response_model=OscarResultsResponse)
async def get_results(
    edition_id: str | None = Query(default=None, alias="editionId"),
    claims: dict = Depends(auth_dependency),
):
    """Leaderboard and per-category prediction stats for one edition."""
    parsed_edition_id = parse_edition_id(edition_id)

    try:
        return await oscar_repository.get_results_snapshot(parsed_edition_id)
    except DatabaseError as e:
        logger.error(
            "Failed to load Oscar results",
            edition_id=parsed_edition_id,
            user_id=claims.get("sub"),
            error=str(e),
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load results",
        )
