"""
Cron API Routes
Endpoints the external scheduler calls with the shared bearer secret.

Every authorized call answers with a JSON body describing each sub-job,
including partial failures; the status code only summarizes it.
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from watchclub.auth.cron import cron_auth_dependency
from watchclub.infrastructure.observability.logging import get_logger
from watchclub.jobs.daily_recommendation_job import daily_recommendation_job
from watchclub.jobs.event_notifier_job import get_event_notifier_job
from watchclub.models.api.cron_response import DailyCronResponse, HourlyEventsResponse

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api/cron", tags=["cron"], dependencies=[Depends(cron_auth_dependency)]
)


def _clean(result: dict) -> dict:
    return {key: value for key, value in result.items() if value is not None}


@router.get("/daily-events", response_model=DailyCronResponse)
async def daily_events():
    """Tomorrow's events notification plus today's recommendation."""
    # Separate failure boundaries: one sub-job failing never hides the other
    try:
        events = await get_event_notifier_job().run_tomorrow()
    except Exception as e:
        logger.exception("Events sub-job crashed")
        events = {"success": False, "eventsCount": 0, "error": str(e)}

    try:
        recommendation = await daily_recommendation_job.run()
    except Exception as e:
        logger.exception("Recommendation sub-job crashed")
        recommendation = {"success": False, "error": str(e)}

    success = bool(events.get("success")) and bool(recommendation.get("success"))
    body = DailyCronResponse(
        success=success,
        events=_clean(events),
        recommendation=_clean(recommendation),
    )

    logger.info(
        "Daily cron completed",
        success=success,
        events_success=events.get("success"),
        recommendation_success=recommendation.get("success"),
    )
    return JSONResponse(
        status_code=status.HTTP_200_OK if success else status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body.model_dump(exclude_none=True),
    )


@router.get("/hourly-events", response_model=HourlyEventsResponse)
async def hourly_events():
    """Events starting within the current local hour."""
    try:
        result = await get_event_notifier_job().run_current_hour()
    except Exception as e:
        logger.exception("Hourly events job crashed")
        result = {"success": False, "error": str(e)}

    if not result.get("success"):
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": result.get("error") or "Hourly events job failed"},
        )

    body = HourlyEventsResponse(**result)
    return JSONResponse(content=body.model_dump(exclude_none=True))
