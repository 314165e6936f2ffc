"""
Authentication dependencies for FastAPI routes.

Authentication itself happens upstream: the identity gateway verifies the
caller and forwards the user key in the ``X-User-Id`` header. These
dependencies only resolve that key to a user record.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from matching.database.db import get_db_session
from matching.services import user_service

USER_ID_HEADER = "X-User-Id"


async def get_current_user(
    session: AsyncSession = Depends(get_db_session),
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
) -> dict:
    """
    Dependency to get the current authenticated user.

    Args:
        session: Database session
        x_user_id: User key forwarded by the identity gateway

    Returns:
        User dictionary

    Raises:
        HTTPException: If the header is missing or names no user
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authenticated user",
        )

    user = await user_service.get_user_by_id(session, x_user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    return user
