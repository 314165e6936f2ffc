"""User route handlers."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from matching.api.auth_dependencies import get_current_user
from matching.database.db import get_db_session
from matching.models.schemas import UserInfoResponse
from matching.services import user_service
from matching.services.errors import MatchingError

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/users/me", response_model=UserInfoResponse)
async def get_me(
    current_user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get the current user's profile, ongoing match and match history."""
    try:
        info = await user_service.get_user_info(session, current_user["id"])
        return {"result": True, **info}
    except MatchingError:
        raise
    except Exception as e:
        logger.error(f"Error fetching user info: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error fetching user info")
