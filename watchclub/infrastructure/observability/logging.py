"""
Structured logging setup for the watch club backend.
Provides JSON-formatted logs with consistent fields for the cron jobs and the change feed.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import LoggerFactory


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging with JSON output.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    # Suppress noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("psycopg.pool").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def log_job_result(job: str, result: dict[str, Any], duration_ms: float | None = None) -> None:
    """Log a scheduled job outcome with consistent fields."""
    logger = get_logger("jobs")

    log_data = {"job": job, "success": result.get("success", False)}
    for key in ("type", "eventsCount", "skipped", "error"):
        if key in result:
            log_data[key] = result[key]
    if duration_ms is not None:
        log_data["duration_ms"] = round(duration_ms, 2)

    if log_data["success"]:
        logger.info("Scheduled job completed", **log_data)
    else:
        logger.error("Scheduled job failed", **log_data)
