"""
Resource lifecycle for jobs started outside the web app (worker CLI).
"""

from contextlib import asynccontextmanager

from watchclub.db.pool import db_pool
from watchclub.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def job_resources():
    """Open the database pool for the duration of a job unless the app already did."""
    opened_here = False
    if not db_pool.is_initialized:
        await db_pool.initialize()
        opened_here = True

    try:
        yield
    finally:
        if opened_here:
            await db_pool.close()
            logger.debug("Job resources released")
