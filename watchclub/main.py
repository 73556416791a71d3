# watchclub/main.py
"""
FastAPI app with database pool, Redis cache and change-feed lifecycle management.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from watchclub.config import settings
from watchclub.db.pool import db_pool
from watchclub.infrastructure.observability.logging import get_logger, setup_logging
from watchclub.realtime.hub import relay_hub
from watchclub.realtime.transport import get_change_transport, reset_change_transport
from watchclub.routes import board, cron, health, oscars, recommendations, stream
from watchclub.services.redis_client import fast_redis

# Setup logging before creating the app
setup_logging(log_level="DEBUG" if settings.debug else "INFO")
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown with proper resource management."""

    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    startup_tasks = []

    try:
        # Database pool first: everything else reads through it
        logger.info("Initializing database pool")
        await db_pool.initialize()
        startup_tasks.append("database_pool")

        if settings.RECOMMENDATION_CACHE_ENABLED:
            logger.info("Initializing Redis connection")
            await fast_redis.initialize()
            startup_tasks.append("redis")

        if settings.CHANGE_FEED_ENABLED:
            logger.info("Starting change feed listener")
            await get_change_transport().connect()
            startup_tasks.append("change_feed")

        logger.info("All services initialized successfully", services=startup_tasks)

    except Exception as e:
        logger.error("Failed to initialize services", error=str(e), completed_tasks=startup_tasks)

        # Clean up any successfully initialized services in reverse order
        if "change_feed" in startup_tasks:
            await reset_change_transport()

        if "redis" in startup_tasks:
            try:
                await fast_redis.close()
            except Exception as cleanup_error:
                logger.error("Error cleaning up Redis", error=str(cleanup_error))

        if "database_pool" in startup_tasks:
            try:
                await db_pool.close()
            except Exception as cleanup_error:
                logger.error("Error cleaning up database pool", error=str(cleanup_error))

        raise

    yield

    # Shutdown sequence (reverse order)
    logger.info("Application shutting down")

    shutdown_errors = []

    try:
        logger.info("Closing change feed")
        await relay_hub.close()
        await reset_change_transport()
    except Exception as e:
        logger.error("Error closing change feed", error=str(e))
        shutdown_errors.append(f"Change feed: {e}")

    if "redis" in startup_tasks:
        try:
            logger.info("Closing Redis connection")
            await fast_redis.close()
        except Exception as e:
            logger.error("Error closing Redis", error=str(e))
            shutdown_errors.append(f"Redis: {e}")

    # Database pool last (may have active connections)
    try:
        logger.info("Closing database pool")
        await db_pool.close()
    except Exception as e:
        logger.error("Error closing database pool", error=str(e))
        shutdown_errors.append(f"Database: {e}")

    if shutdown_errors:
        logger.warning("Some services had shutdown errors", errors=shutdown_errors)
    else:
        logger.info("All services closed successfully")


app = FastAPI(
    title="Watch Club",
    description="Daily recommendations, event reminders and live board/results feeds",
    version="0.1.0",
    lifespan=lifespan,
)

# Include routers
app.include_router(health.router)
app.include_router(cron.router)
app.include_router(recommendations.router)
app.include_router(board.router)
app.include_router(oscars.router)
app.include_router(stream.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    logger.info(
        "HTTP request completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(process_time, 2),
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
