"""Match lifecycle route handlers."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from matching.api.routes import limiter
from matching.api.auth_dependencies import get_current_user
from matching.database.db import get_db_session
from matching.models.schemas import (
    CreateMatchRequest,
    CreateMatchResponse,
    ErrorResponse,
    MatchListResponse,
    MatchResponse,
    ResultResponse,
)
from matching.services import match_service
from matching.services.errors import MatchingError

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post(
    "/api/matches",
    response_model=CreateMatchResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
@limiter.limit("30/minute")
async def create_match(
    request: Request,
    payload: CreateMatchRequest,
    current_user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Create a match for the current user and place it in a stadium.

    Request body:
        {
            "activity_type": "soccer",
            "players": ["user-a", "user-b", "user-c"]
        }

    Returns:
        dict: ``{"result": true, "match_id": ..., "stadium": ...}``
    """
    try:
        result = await match_service.create_match(
            session, current_user["id"], payload.activity_type, payload.players
        )
        return {"result": True, **result}
    except MatchingError:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating match: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error creating match")


@router.delete(
    "/api/matches/{match_id}",
    response_model=ResultResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
@limiter.limit("30/minute")
async def delete_match(
    request: Request,
    match_id: str,
    current_user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Cancel a match the current user initiated and release its capacity."""
    try:
        await match_service.delete_match(session, current_user["id"], match_id)
        return {"result": True}
    except MatchingError:
        raise
    except Exception as e:
        logger.error(f"Error deleting match {match_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error deleting match")


@router.get("/api/matches/mine", response_model=MatchResponse)
async def get_my_match(
    current_user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get the match the current user initiated."""
    try:
        match = await match_service.get_match(session, current_user["id"])
        return {"result": True, "match": match}
    except MatchingError:
        raise
    except Exception as e:
        logger.error(f"Error fetching match: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error fetching match")


@router.get("/api/matches", response_model=MatchListResponse)
async def get_all_matchings(session: AsyncSession = Depends(get_db_session)):
    """Get every match."""
    try:
        docs = await match_service.get_all_matchings(session)
        return {"result": True, "docs": docs}
    except MatchingError:
        raise
    except Exception as e:
        logger.error(f"Error fetching matches: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error fetching matches")
