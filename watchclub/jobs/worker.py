"""
Generic background worker runner.

Reads the desired job name from CLI args or the WORKER_JOB environment
variable and runs it once. Scheduling itself is external (platform cron or
the /api/cron routes).
"""

import asyncio
import os
import sys
from collections.abc import Awaitable, Callable

from watchclub.infrastructure.observability.logging import get_logger
from watchclub.jobs.daily_recommendation_job import run_daily_recommendation
from watchclub.jobs.event_notifier_job import run_daily_events, run_hourly_events
from watchclub.jobs.movie_details_backfill_job import run_movie_details_backfill

logger = get_logger(__name__)

JobCoroutine = Callable[[], Awaitable[None]]

JOB_REGISTRY: dict[str, JobCoroutine] = {
    "daily_recommendation": run_daily_recommendation,
    "daily_events": run_daily_events,
    "hourly_events": run_hourly_events,
    "movie_details_backfill": run_movie_details_backfill,
}


def _resolve_job_name() -> str:
    """Pick the target job from CLI args or WORKER_JOB env variable."""
    if len(sys.argv) > 1:
        return sys.argv[1].strip().lower()
    return os.getenv("WORKER_JOB", "daily_recommendation").strip().lower()


async def run_worker(job_name: str | None = None) -> None:
    """Run the requested background job."""
    name = (job_name or _resolve_job_name()).strip().lower()
    if name not in JOB_REGISTRY:
        raise ValueError(
            f"Unknown worker job '{name}'. "
            f"Available jobs: {', '.join(sorted(JOB_REGISTRY.keys()))}"
        )

    logger.info("Starting background worker", job=name)
    await JOB_REGISTRY[name]()


def main() -> None:
    """CLI entrypoint."""
    job_name = _resolve_job_name()
    asyncio.run(run_worker(job_name))


if __name__ == "__main__":
    main()
