"""
Daily recommendation API Routes
"""

from fastapi import APIRouter, HTTPException, status

from watchclub.db.helpers import DatabaseError
from watchclub.infrastructure.observability.logging import get_logger
from watchclub.services.recommendation_service import get_daily_recommendation

logger = get_logger(__name__)

router = APIRouter(prefix="/api/recommendations", tags=["recommendations"])


@router.get("/today")
async def get_today_recommendation():
    """Today's pick. No recommendation yet is a normal empty state."""
    try:
        view = await get_daily_recommendation()
    except DatabaseError as e:
        logger.error("Failed to load daily recommendation", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load recommendation",
        )

    return {"recommendation": view.to_dict() if view else None}
