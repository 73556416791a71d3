"""
Shared-secret gate for scheduler-triggered routes.

The scheduler sends `Authorization: Bearer <CRON_SECRET>`. With no secret
configured every request is refused.
"""

import hmac

from fastapi import Header

from watchclub.auth.verify import unauthorized
from watchclub.config import settings
from watchclub.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


def verify_cron_secret(authorization: str | None, secret: str | None) -> bool:
    if not secret or not authorization:
        return False
    return hmac.compare_digest(authorization.encode(), f"Bearer {secret}".encode())


def cron_auth_dependency(authorization: str | None = Header(default=None)) -> None:
    if not verify_cron_secret(authorization, settings.CRON_SECRET):
        logger.warning("Rejected cron request", has_header=authorization is not None)
        raise unauthorized()
