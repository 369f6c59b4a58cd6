"""Request identity dependencies.

Authentication happens upstream; by the time a request reaches these routes
the gateway has verified the caller and forwards the user id in X-User-Id
(and the acting coach in X-Admin-Id on admin routes).
"""

from fastapi import Header, HTTPException, status
from loguru import logger


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """FastAPI dependency returning the authenticated user ID.

    Raises:
        HTTPException: 401 if the header is missing or blank
    """
    if not x_user_id or not x_user_id.strip():
        logger.debug("Rejected request without X-User-Id")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return x_user_id.strip()


def get_admin_id(x_admin_id: str | None = Header(default=None)) -> str | None:
    """Acting coach for audit attribution; optional."""
    if x_admin_id and x_admin_id.strip():
        return x_admin_id.strip()
    return None
