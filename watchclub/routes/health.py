# watchclub/routes/health.py
"""
Health check endpoints: liveness, and readiness across the database pool,
Redis and the change feed.
"""

import time

from fastapi import APIRouter

from watchclub.config import settings
from watchclub.db.pool import db_health_check
from watchclub.realtime.transport import get_change_transport
from watchclub.services.redis_client import fast_redis

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "watchclub-backend"}


@router.get("/readyz")
async def readyz():
    """
    Readiness check with all dependencies.

    The change feed is reported but does not fail readiness: it reconnects on
    its own and clients only see a "connected" flag.
    """
    checks = {}
    overall_ok = True

    # 1) Database pool
    t0 = time.time()
    try:
        db_health = await db_health_check()
        is_healthy = db_health.get("healthy", False)
        checks["database"] = {
            "ok": is_healthy,
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }
        if "pool_stats" in db_health:
            pool_stats = db_health["pool_stats"]
            checks["database"].update(
                {
                    "pool_size": pool_stats.get("pool_size", 0),
                    "pool_available": pool_stats.get("pool_available", 0),
                }
            )
        if not is_healthy:
            checks["database"]["error"] = db_health.get("error", "Database unhealthy")
        overall_ok = overall_ok and is_healthy
    except Exception as e:
        checks["database"] = {"ok": False, "error": f"{type(e).__name__}: {e}"}
        overall_ok = False

    # 2) Redis (recommendation cache)
    if settings.RECOMMENDATION_CACHE_ENABLED:
        t0 = time.time()
        redis_ok = await fast_redis.ping()
        checks["redis"] = {
            "ok": redis_ok,
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }
        overall_ok = overall_ok and redis_ok

    # 3) Change feed
    if settings.CHANGE_FEED_ENABLED:
        transport = get_change_transport()
        checks["change_feed"] = {
            "connected": transport.is_connected,
            "channels": len(transport.channel_names),
        }

    # 4) Configuration
    config_issues = []
    if not settings.CRON_SECRET:
        config_issues.append("CRON_SECRET not set")
    if not settings.TELEGRAM_BOT_TOKEN or not settings.TELEGRAM_CHAT_ID:
        config_issues.append("Telegram not configured")

    checks["configuration"] = {
        "ok": not config_issues,
        "issues": config_issues or None,
        "environment": settings.environment,
    }
    overall_ok = overall_ok and not config_issues

    return {"overall_ok": overall_ok, "checks": checks, "timestamp": time.time()}
