"""001_initial_schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

Creates the matching schema:
- users, user_match_history
- stadiums, stadium_activity_types, stadium_bookings
- matches
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables."""
    op.create_table(
        "users",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("rank", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("unit", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("match_ongoing", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_users_unit", "users", ["unit"])

    op.create_table(
        "user_match_history",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.String(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("match_id", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_user_match_history_user", "user_match_history", ["user_id"])

    op.create_table(
        "stadiums",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(), nullable=False, unique=True),
        sa.Column("belong_at", sa.String(), nullable=False),
        sa.Column("max_capacity", sa.Integer(), nullable=False),
        sa.Column("occupied_capacity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("modified_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("max_capacity >= 0", name="ck_stadiums_max_capacity"),
        sa.CheckConstraint(
            "occupied_capacity >= 0 AND occupied_capacity <= max_capacity",
            name="ck_stadiums_occupied_capacity",
        ),
    )
    op.create_index("idx_stadiums_belong_at", "stadiums", ["belong_at"])

    op.create_table(
        "stadium_activity_types",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "stadium_id",
            sa.Integer(),
            sa.ForeignKey("stadiums.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("activity_type", sa.String(), nullable=False),
        sa.UniqueConstraint("stadium_id", "activity_type", name="uq_stadium_activity_type"),
    )
    op.create_index(
        "idx_stadium_activity_types_type", "stadium_activity_types", ["activity_type"]
    )

    op.create_table(
        "stadium_bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "stadium_id",
            sa.Integer(),
            sa.ForeignKey("stadiums.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("match_id", sa.String(), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_stadium_bookings_stadium", "stadium_bookings", ["stadium_id"])

    op.create_table(
        "matches",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("match_id", sa.String(), nullable=False, unique=True),
        sa.Column("initiator_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("activity_type", sa.String(), nullable=False),
        sa.Column("players", sa.JSON(), nullable=False),
        sa.Column("stadium", sa.String(), sa.ForeignKey("stadiums.name"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_matches_initiator", "matches", ["initiator_id"])
    op.create_index("idx_matches_stadium", "matches", ["stadium"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("matches")
    op.drop_table("stadium_bookings")
    op.drop_table("stadium_activity_types")
    op.drop_table("stadiums")
    op.drop_table("user_match_history")
    op.drop_table("users")
