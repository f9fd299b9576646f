"""
Shared FastAPI dependencies.
"""

from typing import Optional

from fastapi import Depends, Header

from ticketing.core.config import Settings, get_settings
from ticketing.core.errors import Unauthorized
from ticketing.core.logging import get_logger
from ticketing.core.security import secrets_match
from ticketing.services.collaborators import Collaborators, get_collaborators

logger = get_logger(__name__)


def get_app_settings() -> Settings:
    return get_settings()


def collaborators() -> Collaborators:
    """Overridden in tests with in-memory fakes."""
    return get_collaborators()


async def require_admin(
    x_admin_secret: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_app_settings),
) -> None:
    """Gate for admin endpoints: X-Admin-Secret must match ADMIN_SECRET."""
    if not secrets_match(settings.ADMIN_SECRET, x_admin_secret):
        logger.warning("admin_auth_failed")
        raise Unauthorized("Invalid or missing admin secret")
