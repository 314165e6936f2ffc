"""
SQLAlchemy ORM models for the stadium matching system.
"""

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
    Index,
    JSON,
)
from sqlalchemy.orm import relationship
from matching.database.db import Base
from matching.utils.datetime_utils import utcnow


class User(Base):
    """Players who can initiate matches.

    Credentials live with the auth collaborator; only the organizational
    unit and match linkage are used here.
    """

    __tablename__ = "users"

    id = Column(String, primary_key=True)  # Login identity key
    name = Column(String, nullable=True)
    rank = Column(Integer, nullable=False, default=0)
    unit = Column(String, nullable=False)  # Organizational unit, matched against Stadium.belong_at
    description = Column(Text, nullable=True)
    match_ongoing = Column(String, nullable=True)  # match_id of the single active match
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)

    # Relationships
    match_history = relationship(
        "UserMatchHistory",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="UserMatchHistory.id",
    )

    __table_args__ = (
        Index("idx_users_unit", "unit"),
    )


class UserMatchHistory(Base):
    """Append-only record of every match a user has initiated."""

    __tablename__ = "user_match_history"

    id = Column(Integer, primary_key=True, autoincrement=True)  # Defines history order
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    match_id = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    # Relationships
    user = relationship("User", back_populates="match_history")

    __table_args__ = (
        Index("idx_user_match_history_user", "user_id"),
    )


class Stadium(Base):
    """Venues with a fixed player capacity."""

    __tablename__ = "stadiums"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, unique=True)
    belong_at = Column(String, nullable=False)  # Owning organizational unit
    max_capacity = Column(Integer, nullable=False)
    occupied_capacity = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    modified_at = Column(DateTime(timezone=True), default=utcnow)

    # Relationships
    activity_types = relationship(
        "StadiumActivityType", back_populates="stadium", cascade="all, delete-orphan"
    )
    bookings = relationship(
        "StadiumBooking", back_populates="stadium", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("max_capacity >= 0", name="ck_stadiums_max_capacity"),
        CheckConstraint(
            "occupied_capacity >= 0 AND occupied_capacity <= max_capacity",
            name="ck_stadiums_occupied_capacity",
        ),
        Index("idx_stadiums_belong_at", "belong_at"),
    )


class StadiumActivityType(Base):
    """Activity types a stadium supports (e.g. "soccer", "futsal")."""

    __tablename__ = "stadium_activity_types"

    id = Column(Integer, primary_key=True, autoincrement=True)
    stadium_id = Column(Integer, ForeignKey("stadiums.id", ondelete="CASCADE"), nullable=False)
    activity_type = Column(String, nullable=False)

    # Relationships
    stadium = relationship("Stadium", back_populates="activity_types")

    __table_args__ = (
        UniqueConstraint("stadium_id", "activity_type", name="uq_stadium_activity_type"),
        Index("idx_stadium_activity_types_type", "activity_type"),
    )


class StadiumBooking(Base):
    """Match identifiers currently holding capacity at a stadium."""

    __tablename__ = "stadium_bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    stadium_id = Column(Integer, ForeignKey("stadiums.id", ondelete="CASCADE"), nullable=False)
    match_id = Column(String, nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    # Relationships
    stadium = relationship("Stadium", back_populates="bookings")

    __table_args__ = (
        Index("idx_stadium_bookings_stadium", "stadium_id"),
    )


class Match(Base):
    """A group of players occupying stadium capacity for one activity."""

    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    match_id = Column(String, nullable=False, unique=True)  # Opaque generated identifier
    initiator_id = Column(String, ForeignKey("users.id"), nullable=False)
    activity_type = Column(String, nullable=False)
    players = Column(JSON, nullable=False, default=list)  # Ordered participant identifiers
    stadium = Column(String, ForeignKey("stadiums.name"), nullable=False)  # Resolved at creation, never changes
    created_at = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("idx_matches_initiator", "initiator_id"),
        Index("idx_matches_stadium", "stadium"),
    )
