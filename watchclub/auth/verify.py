"""
verify.py
---------
Purpose:
    Session JWT verification using Supabase JWKS (ES256).

Notes:
    - Fetches JWKS from Supabase and caches keys.
    - A missing header is answered with 401 (not FastAPI's default 403) so
      every unauthenticated request gets the same status.
    - Provides `auth_dependency` for session-protected routes.
"""

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient

from watchclub.config import settings
from watchclub.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

SUPABASE_AUDIENCE = "authenticated"

_jwk_client = PyJWKClient(settings.jwks_url())
_security = HTTPBearer(auto_error=False)


def unauthorized(detail: str = "Unauthorized") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_jwt(token: str) -> dict:
    try:
        signing_key = _jwk_client.get_signing_key_from_jwt(token)
        decoded = jwt.decode(
            token,
            signing_key.key,
            algorithms=["ES256"],
            audience=SUPABASE_AUDIENCE,
            options={"verify_exp": True},
        )
        return decoded
    except jwt.PyJWTError as e:
        logger.info("Rejected session token", error_type=type(e).__name__)
        raise unauthorized(f"Invalid authentication token: {e}") from e


def auth_dependency(
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
) -> dict:
    if credentials is None or not credentials.credentials:
        raise unauthorized()
    return verify_jwt(credentials.credentials)
