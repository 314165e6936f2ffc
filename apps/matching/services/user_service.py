"""
User lookups for the matching core.

Registration and authentication belong to the identity collaborator; this
module only resolves user records and their match linkage.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from matching.database.models import User, UserMatchHistory
from matching.services.errors import NotFoundError, classify_store_error
from matching.utils.datetime_utils import isoformat_or_none

logger = logging.getLogger(__name__)


def _user_to_dict(user: User) -> Dict:
    return {
        "id": user.id,
        "name": user.name,
        "rank": user.rank,
        "unit": user.unit,
        "description": user.description,
        "match_ongoing": user.match_ongoing,
        "created_at": isoformat_or_none(user.created_at),
        "updated_at": isoformat_or_none(user.updated_at),
    }


async def get_user_by_id(session: AsyncSession, user_id: str) -> Optional[Dict]:
    """
    Get a user by identity key.

    Args:
        session: Database session
        user_id: User identity key

    Returns:
        User dict or None if not found
    """
    result = await session.execute(
        select(User).where(User.id == user_id).execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    return _user_to_dict(user) if user else None


async def get_match_history(session: AsyncSession, user_id: str) -> List[str]:
    """Match identifiers a user has initiated, oldest first."""
    result = await session.execute(
        select(UserMatchHistory.match_id)
        .where(UserMatchHistory.user_id == user_id)
        .order_by(UserMatchHistory.id)
    )
    return list(result.scalars().all())


async def get_user_info(session: AsyncSession, user_id: str) -> Dict:
    """
    Get a user's profile together with ongoing match and history.

    Raises:
        NotFoundError: NoSuchUser
    """
    try:
        user = await get_user_by_id(session, user_id)
        if user is None:
            raise NotFoundError("NoSuchUser", f"User {user_id!r} not found")
        user["match_history"] = await get_match_history(session, user_id)
        return user
    except SQLAlchemyError as e:
        raise classify_store_error(e) from e


async def create_user(
    session: AsyncSession,
    user_id: str,
    unit: str,
    name: Optional[str] = None,
    rank: int = 0,
    description: Optional[str] = None,
) -> Dict:
    """
    Insert a user record (seeding and tests; registration lives elsewhere).

    Raises:
        ConflictError: DuplicatedEntity if the identity key is taken
    """
    user = User(id=user_id, unit=unit, name=name, rank=rank, description=description)
    session.add(user)
    try:
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        raise classify_store_error(e) from e
    logger.info(f"Created user {user_id} in unit {unit!r}")
    return _user_to_dict(user)
