"""
Stadium capacity allocator.

Selects a stadium for a new match and reserves capacity for it, and releases
that capacity again when the match is cancelled.

Selection is best-fit-by-scarcity: candidates are ranked ascending by
remaining capacity (``max_capacity - occupied_capacity``) and the first one
that can still hold the whole group wins, so small groups fill small venues
and large venues stay free for large groups.

Reservation is optimistic. The capacity increment is a single conditional
UPDATE guarded by the occupied value observed at read time; if another caller
changed the stadium in between, zero rows match and the allocator re-reads
and re-ranks, up to ``MAX_ALLOCATION_ATTEMPTS`` times.

All functions take the caller's ``AsyncSession`` and never commit; the match
lifecycle service owns the transaction.
"""

import logging
from typing import List, Optional, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from matching.database.models import Stadium, StadiumActivityType, StadiumBooking
from matching.services.errors import (
    ConflictError,
    NotFoundError,
    ResourceExhaustedError,
    StoreError,
)
from matching.utils import constants
from matching.utils.datetime_utils import utcnow

logger = logging.getLogger(__name__)


def remaining_capacity(stadium: Stadium) -> int:
    """Free player slots left at a stadium."""
    return stadium.max_capacity - stadium.occupied_capacity


async def find_candidate_stadiums(
    session: AsyncSession, activity_type: str, unit: str
) -> List[Stadium]:
    """
    Find stadiums in a unit that support an activity type.

    Rows are re-read from the store on every call (``populate_existing``) so
    retries see capacity written by other callers.

    Args:
        session: Database session
        activity_type: Requested activity (e.g. "soccer")
        unit: Organizational unit of the initiating user

    Returns:
        Stadiums in store order (ascending id)
    """
    result = await session.execute(
        select(Stadium)
        .join(StadiumActivityType, StadiumActivityType.stadium_id == Stadium.id)
        .where(
            StadiumActivityType.activity_type == activity_type,
            Stadium.belong_at == unit,
        )
        .order_by(Stadium.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().unique().all())


def rank_by_remaining_capacity(stadiums: Sequence[Stadium]) -> List[Stadium]:
    """Sort ascending by remaining capacity; ties keep store order (stable sort)."""
    return sorted(stadiums, key=remaining_capacity)


def select_best_fit(stadiums: Sequence[Stadium], player_count: int) -> Optional[Stadium]:
    """
    Pick the tightest-fitting stadium for a group.

    Args:
        stadiums: Candidate stadiums in store order
        player_count: Number of players to seat

    Returns:
        First ranked stadium with enough remaining capacity, or None
    """
    for stadium in rank_by_remaining_capacity(stadiums):
        if remaining_capacity(stadium) >= player_count:
            return stadium
    return None


async def _try_reserve(
    session: AsyncSession,
    stadium_id: int,
    observed_occupied: int,
    player_count: int,
) -> bool:
    """
    Compare-and-swap the occupied capacity of one stadium.

    Returns:
        True if the increment was applied, False if the stadium changed since
        ``observed_occupied`` was read or no longer has room
    """
    result = await session.execute(
        update(Stadium)
        .where(
            Stadium.id == stadium_id,
            Stadium.occupied_capacity == observed_occupied,
            Stadium.max_capacity - Stadium.occupied_capacity >= player_count,
        )
        .values(
            occupied_capacity=Stadium.occupied_capacity + player_count,
            modified_at=utcnow(),
        )
    )
    return result.rowcount == 1


async def allocate(
    session: AsyncSession,
    match_id: str,
    activity_type: str,
    unit: str,
    player_count: int,
) -> Stadium:
    """
    Select a stadium for a match and reserve capacity for it.

    On success the stadium's occupied capacity has been increased by
    ``player_count`` and ``match_id`` added to its booked set, both pending in
    the caller's transaction.

    Args:
        session: Database session
        match_id: Identifier of the match being created
        activity_type: Requested activity
        unit: Organizational unit of the initiating user
        player_count: Number of participants

    Returns:
        The reserved Stadium

    Raises:
        ResourceExhaustedError: NoMatchingStadium when no stadium supports the
            activity in the unit, FailedAssigningStadium when none has room
        ConflictError: CapacityContention when every attempt lost a race
    """
    for attempt in range(1, constants.MAX_ALLOCATION_ATTEMPTS + 1):
        candidates = await find_candidate_stadiums(session, activity_type, unit)
        if not candidates:
            raise ResourceExhaustedError(
                "NoMatchingStadium",
                f"No stadium in unit {unit!r} supports {activity_type!r}",
            )

        stadium = select_best_fit(candidates, player_count)
        if stadium is None:
            raise ResourceExhaustedError(
                "FailedAssigningStadium",
                f"No stadium has room for {player_count} player(s)",
            )

        observed = stadium.occupied_capacity
        if await _try_reserve(session, stadium.id, observed, player_count):
            session.add(StadiumBooking(stadium_id=stadium.id, match_id=match_id))
            logger.info(
                f"Reserved {player_count} slot(s) at stadium {stadium.name!r} "
                f"for match {match_id} ({observed} -> {observed + player_count}"
                f"/{stadium.max_capacity})"
            )
            return stadium

        logger.warning(
            f"Capacity of stadium {stadium.name!r} changed during allocation "
            f"(attempt {attempt}/{constants.MAX_ALLOCATION_ATTEMPTS}), retrying"
        )

    raise ConflictError(
        "CapacityContention",
        f"Could not reserve capacity after {constants.MAX_ALLOCATION_ATTEMPTS} attempts",
    )


async def release(
    session: AsyncSession,
    stadium_name: str,
    match_id: str,
    player_count: int,
) -> None:
    """
    Return a cancelled match's capacity to its stadium.

    Removes ``match_id`` from the booked set and decrements occupied capacity,
    refusing to take it below zero. Pending in the caller's transaction.

    Raises:
        NotFoundError: NoSuchStadium, or NoSuchMatch when the booking is gone
        StoreError: the stadium holds less capacity than the match released
    """
    result = await session.execute(select(Stadium.id).where(Stadium.name == stadium_name))
    stadium_id = result.scalar_one_or_none()
    if stadium_id is None:
        raise NotFoundError("NoSuchStadium", f"Stadium {stadium_name!r} not found")

    unbooked = await session.execute(
        delete(StadiumBooking).where(
            StadiumBooking.stadium_id == stadium_id,
            StadiumBooking.match_id == match_id,
        )
    )
    if unbooked.rowcount != 1:
        raise NotFoundError(
            "NoSuchMatch", f"Match {match_id} holds no booking at stadium {stadium_name!r}"
        )

    result = await session.execute(
        update(Stadium)
        .where(
            Stadium.id == stadium_id,
            Stadium.occupied_capacity >= player_count,
        )
        .values(
            occupied_capacity=Stadium.occupied_capacity - player_count,
            modified_at=utcnow(),
        )
    )
    if result.rowcount != 1:
        raise StoreError(
            "StoreError",
            f"Stadium {stadium_name!r} holds less than {player_count} occupied slot(s)",
        )

    logger.info(f"Released {player_count} slot(s) at stadium {stadium_name!r} for match {match_id}")
