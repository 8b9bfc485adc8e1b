"""Acting-user resolution.

Authentication happens upstream (identity provider / gateway), which forwards
the authenticated user's id in the ``X-User-ID`` header.
"""

from uuid import UUID

from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tilldesk.core.db import get_db
from tilldesk.core.errors import UnauthorizedError
from tilldesk.core.logging import get_logger
from tilldesk.models.user import User

logger = get_logger(__name__)


async def get_current_user(
    x_user_id: str | None = Header(None, alias="X-User-ID"),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Dependency to load the active user named by the X-User-ID header."""
    if not x_user_id:
        raise UnauthorizedError("Not authenticated")

    try:
        user_uuid = UUID(x_user_id)
    except ValueError:
        logger.info("auth.invalid_user_id", user_id=x_user_id)
        raise UnauthorizedError("Invalid user identifier") from None

    result = await db.execute(select(User).where(User.id == user_uuid))
    user = result.scalar_one_or_none()

    if user is None or not user.is_active:
        logger.info("auth.unknown_or_inactive_user", user_id=x_user_id)
        raise UnauthorizedError("User not found or inactive")

    return user
