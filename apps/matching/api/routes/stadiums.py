"""Stadium registry route handlers."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from matching.api.routes import limiter
from matching.database.db import get_db_session
from matching.models.schemas import StadiumCreate, StadiumListResponse, StadiumResponse
from matching.services import stadium_service
from matching.services.errors import MatchingError

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/stadiums", response_model=StadiumResponse)
@limiter.limit("10/minute")
async def create_stadium(
    request: Request,
    payload: StadiumCreate,
    session: AsyncSession = Depends(get_db_session),
):
    """
    Register a stadium.

    Request body:
        {
            "name": "North Field",
            "available_type": ["soccer", "futsal"],
            "belong_at": "unit-1",
            "max_players": 22
        }
    """
    try:
        stadium = await stadium_service.create_stadium(
            session,
            name=payload.name,
            available_types=payload.available_type,
            belong_at=payload.belong_at,
            max_capacity=payload.max_players,
        )
        return {"result": True, "stadium": stadium}
    except MatchingError:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating stadium: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error creating stadium")


@router.get("/api/stadiums", response_model=StadiumListResponse)
async def list_stadiums(
    unit: Optional[str] = Query(None),
    session: AsyncSession = Depends(get_db_session),
):
    """List stadiums, optionally only those owned by ``unit``."""
    try:
        docs = await stadium_service.list_stadiums(session, unit=unit)
        return {"result": True, "docs": docs}
    except MatchingError:
        raise
    except Exception as e:
        logger.error(f"Error listing stadiums: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error listing stadiums")


@router.get("/api/stadiums/{name}", response_model=StadiumResponse)
async def get_stadium(name: str, session: AsyncSession = Depends(get_db_session)):
    """Get a stadium with its current capacity and bookings."""
    try:
        stadium = await stadium_service.get_stadium(session, name)
        return {"result": True, "stadium": stadium}
    except MatchingError:
        raise
    except Exception as e:
        logger.error(f"Error fetching stadium {name!r}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error fetching stadium")
