"""FastAPI admin authentication dependency (Bearer shared secret)."""
import time
from typing import Optional

from fastapi import Header, HTTPException, status

from funnel.infrastructure.auth.security import bearer_token, compare
from funnel.infrastructure.settings import admin_secret, failed_auth_delay


def require_admin(authorization: Optional[str] = Header(None)) -> None:
    """Accept the request only when the bearer token equals ADMIN_SECRET.

    Failures stall for ADMIN_FAILED_AUTH_DELAY seconds before the 401,
    which the admin gate then counts.
    """
    if compare(bearer_token(authorization), admin_secret()):
        return

    delay = failed_auth_delay()
    if delay:
        time.sleep(delay)
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )
