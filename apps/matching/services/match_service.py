"""
Match lifecycle service: creation, cancellation and lookup of matches.

Creating a match touches three entities: the stadium (capacity and booked
set), the match record, and the initiating user (ongoing pointer and
history). Cancelling reverses all three. Each operation runs in a single
database transaction: if any step fails, the session is rolled back and no
partial reservation or linkage survives.
"""

import logging
from typing import Dict, List, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from matching.database.models import Match, User, UserMatchHistory
from matching.services import allocation_service
from matching.services.errors import (
    ConflictError,
    ForbiddenError,
    MatchingError,
    NotFoundError,
    classify_store_error,
)
from matching.utils.datetime_utils import isoformat_or_none, utcnow
from matching.utils.ids import generate_match_id

logger = logging.getLogger(__name__)


def _match_to_dict(match: Match) -> Dict:
    return {
        "match_id": match.match_id,
        "initiator_id": match.initiator_id,
        "activity_type": match.activity_type,
        "players": list(match.players or []),
        "stadium": match.stadium,
        "created_at": isoformat_or_none(match.created_at),
    }


async def create_match(
    session: AsyncSession,
    initiator_id: str,
    activity_type: str,
    participants: Sequence[str],
) -> Dict:
    """
    Create a match and place it in a stadium.

    Steps: generate an id, resolve the initiator, allocate a stadium in the
    initiator's unit, insert the match, then link it to the initiator as the
    ongoing match and append it to their history. All writes commit together.

    Args:
        session: Database session
        initiator_id: User creating the match
        activity_type: Requested activity
        participants: Ordered participant identifiers

    Returns:
        Dict with ``stadium`` (resolved name) and ``match_id``

    Raises:
        NotFoundError: NoSuchUser
        ConflictError: MatchAlreadyOngoing, DuplicatedEntity, CapacityContention
        ResourceExhaustedError: NoMatchingStadium, FailedAssigningStadium
        StoreError: any other store failure
        ValueError: no participants
    """
    players = list(participants)
    if not players:
        raise ValueError("A match needs at least one participant")
    match_id = generate_match_id()

    try:
        result = await session.execute(
            select(User).where(User.id == initiator_id).execution_options(populate_existing=True)
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError("NoSuchUser", f"User {initiator_id!r} not found")
        if user.match_ongoing:
            raise ConflictError(
                "MatchAlreadyOngoing",
                f"User {initiator_id!r} already has ongoing match {user.match_ongoing}",
            )

        stadium = await allocation_service.allocate(
            session,
            match_id=match_id,
            activity_type=activity_type,
            unit=user.unit,
            player_count=len(players),
        )
        stadium_name = stadium.name

        session.add(
            Match(
                match_id=match_id,
                initiator_id=initiator_id,
                activity_type=activity_type,
                players=players,
                stadium=stadium_name,
            )
        )

        # Guarded so two concurrent creations by one user cannot both link
        linked = await session.execute(
            update(User)
            .where(User.id == initiator_id, User.match_ongoing.is_(None))
            .values(match_ongoing=match_id, updated_at=utcnow())
        )
        if linked.rowcount != 1:
            raise ConflictError(
                "MatchAlreadyOngoing",
                f"User {initiator_id!r} started another match concurrently",
            )
        session.add(UserMatchHistory(user_id=initiator_id, match_id=match_id))

        await session.commit()
    except MatchingError:
        await session.rollback()
        raise
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Store failure creating match for {initiator_id}: {e}", exc_info=True)
        raise classify_store_error(e) from e

    logger.info(f"Created match {match_id} at stadium {stadium_name!r}")
    logger.info(f"Linked match {match_id} to user {initiator_id}")
    return {"stadium": stadium_name, "match_id": match_id}


async def delete_match(session: AsyncSession, initiator_id: str, match_id: str) -> None:
    """
    Cancel a match and release its capacity.

    Only the initiator may cancel. The initiator's ongoing pointer is cleared
    (when it still refers to this match); match history is kept as an audit
    trail.

    Raises:
        NotFoundError: NoSuchMatch, NoSuchStadium
        ForbiddenError: ForbiddenOperation when the caller is not the initiator
        StoreError: any other store failure
    """
    try:
        result = await session.execute(select(Match).where(Match.match_id == match_id))
        match = result.scalar_one_or_none()
        if match is None:
            raise NotFoundError("NoSuchMatch", f"Match {match_id} not found")
        if match.initiator_id != initiator_id:
            raise ForbiddenError(
                "ForbiddenOperation",
                f"Only the initiator can cancel match {match_id}",
            )

        player_count = len(match.players or [])
        stadium_name = match.stadium

        # Zero rows: a concurrent cancellation already released this match
        removed = await session.execute(delete(Match).where(Match.match_id == match_id))
        if removed.rowcount != 1:
            raise NotFoundError("NoSuchMatch", f"Match {match_id} was already cancelled")
        await session.execute(
            update(User)
            .where(User.id == initiator_id, User.match_ongoing == match_id)
            .values(match_ongoing=None, updated_at=utcnow())
        )
        await allocation_service.release(session, stadium_name, match_id, player_count)

        await session.commit()
    except MatchingError:
        await session.rollback()
        raise
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Store failure deleting match {match_id}: {e}", exc_info=True)
        raise classify_store_error(e) from e

    logger.info(f"Deleted match {match_id} (stadium {stadium_name!r}, {player_count} player(s))")


async def get_match(session: AsyncSession, initiator_id: str) -> Dict:
    """
    Get the match a user initiated.

    Raises:
        NotFoundError: NoSuchMatch
        ConflictError: MultipleMatch if more than one record exists
    """
    try:
        result = await session.execute(
            select(Match).where(Match.initiator_id == initiator_id).order_by(Match.id)
        )
        matches = result.scalars().all()
    except SQLAlchemyError as e:
        raise classify_store_error(e) from e

    if not matches:
        raise NotFoundError("NoSuchMatch", f"User {initiator_id!r} has no match")
    if len(matches) > 1:
        raise ConflictError("MultipleMatch", f"User {initiator_id!r} has {len(matches)} matches")
    return _match_to_dict(matches[0])


async def get_all_matchings(session: AsyncSession) -> List[Dict]:
    """Get every match, oldest first."""
    try:
        result = await session.execute(select(Match).order_by(Match.id))
        return [_match_to_dict(m) for m in result.scalars().all()]
    except SQLAlchemyError as e:
        raise classify_store_error(e) from e
