"""
Stadium registry: registration, listing and detail.

Capacity is never changed here; only the allocator reserves and releases it.
"""

import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from matching.database.models import Stadium, StadiumActivityType, StadiumBooking
from matching.services.errors import NotFoundError, classify_store_error
from matching.utils.datetime_utils import isoformat_or_none

logger = logging.getLogger(__name__)


async def _batch_get_activity_types(
    session: AsyncSession, stadium_ids: List[int]
) -> Dict[int, List[str]]:
    """Return supported activity types for each stadium in a single query."""
    if not stadium_ids:
        return {}

    result = await session.execute(
        select(StadiumActivityType.stadium_id, StadiumActivityType.activity_type)
        .where(StadiumActivityType.stadium_id.in_(stadium_ids))
        .order_by(StadiumActivityType.id)
    )
    types_map: Dict[int, List[str]] = {sid: [] for sid in stadium_ids}
    for stadium_id, activity_type in result.all():
        types_map[stadium_id].append(activity_type)
    return types_map


async def _batch_get_bookings(
    session: AsyncSession, stadium_ids: List[int]
) -> Dict[int, List[str]]:
    """Return booked match ids for each stadium in a single query."""
    if not stadium_ids:
        return {}

    result = await session.execute(
        select(StadiumBooking.stadium_id, StadiumBooking.match_id)
        .where(StadiumBooking.stadium_id.in_(stadium_ids))
        .order_by(StadiumBooking.id)
    )
    bookings_map: Dict[int, List[str]] = {sid: [] for sid in stadium_ids}
    for stadium_id, match_id in result.all():
        bookings_map[stadium_id].append(match_id)
    return bookings_map


async def _stadiums_to_dicts(session: AsyncSession, stadiums: List[Stadium]) -> List[Dict]:
    stadium_ids = [s.id for s in stadiums]
    types_map = await _batch_get_activity_types(session, stadium_ids)
    bookings_map = await _batch_get_bookings(session, stadium_ids)
    return [
        {
            "id": s.id,
            "name": s.name,
            "available_types": types_map.get(s.id, []),
            "belong_at": s.belong_at,
            "max_capacity": s.max_capacity,
            "occupied_capacity": s.occupied_capacity,
            "remaining_capacity": s.max_capacity - s.occupied_capacity,
            "matchings": bookings_map.get(s.id, []),
            "modified_at": isoformat_or_none(s.modified_at),
        }
        for s in stadiums
    ]


async def create_stadium(
    session: AsyncSession,
    name: str,
    available_types: Iterable[str],
    belong_at: str,
    max_capacity: int,
) -> Dict:
    """
    Register a stadium with no capacity in use.

    Args:
        session: Database session
        name: Unique stadium name
        available_types: Activity types the stadium supports
        belong_at: Owning organizational unit
        max_capacity: Maximum number of players at once

    Returns:
        Stadium dict

    Raises:
        ConflictError: DuplicatedEntity if the name is taken
    """
    if max_capacity < 0:
        raise ValueError("max_capacity must be non-negative")

    # Preserve order, drop duplicates
    unique_types = list(dict.fromkeys(available_types))
    stadium = Stadium(
        name=name,
        belong_at=belong_at,
        max_capacity=max_capacity,
        occupied_capacity=0,
        activity_types=[StadiumActivityType(activity_type=t) for t in unique_types],
    )
    session.add(stadium)
    try:
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        raise classify_store_error(e) from e

    logger.info(
        f"Registered stadium {name!r} in unit {belong_at!r} "
        f"(capacity {max_capacity}, types {unique_types})"
    )
    return (await _stadiums_to_dicts(session, [stadium]))[0]


async def list_stadiums(session: AsyncSession, unit: Optional[str] = None) -> List[Dict]:
    """List stadiums in store order, optionally filtered by owning unit."""
    query = select(Stadium).order_by(Stadium.id).execution_options(populate_existing=True)
    if unit is not None:
        query = query.where(Stadium.belong_at == unit)
    try:
        result = await session.execute(query)
        return await _stadiums_to_dicts(session, list(result.scalars().all()))
    except SQLAlchemyError as e:
        raise classify_store_error(e) from e


async def get_stadium(session: AsyncSession, name: str) -> Dict:
    """
    Get a stadium by name.

    Raises:
        NotFoundError: NoSuchStadium
    """
    try:
        result = await session.execute(
            select(Stadium).where(Stadium.name == name).execution_options(populate_existing=True)
        )
        stadium = result.scalar_one_or_none()
        if stadium is None:
            raise NotFoundError("NoSuchStadium", f"Stadium {name!r} not found")
        return (await _stadiums_to_dicts(session, [stadium]))[0]
    except SQLAlchemyError as e:
        raise classify_store_error(e) from e
