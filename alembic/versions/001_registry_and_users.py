"""Initial migration: geography, voter, position and candidate registry; official accounts.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # Geography: district > constituency > ward > polling station
    op.create_table(
        "districts",
        sa.Column("id", sa.String(20), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("region", sa.String(100), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "constituencies",
        sa.Column("id", sa.String(20), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("district_id", sa.String(20), sa.ForeignKey("districts.id"), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_constituencies_district_id", "constituencies", ["district_id"])
    op.create_table(
        "wards",
        sa.Column("id", sa.String(20), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("constituency_id", sa.String(20), sa.ForeignKey("constituencies.id"), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_wards_constituency_id", "wards", ["constituency_id"])
    op.create_table(
        "polling_stations",
        sa.Column("id", sa.String(20), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("ward_id", sa.String(20), sa.ForeignKey("wards.id"), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_polling_stations_ward_id", "polling_stations", ["ward_id"])

    op.create_table(
        "voters",
        sa.Column("id", sa.String(30), primary_key=True),
        sa.Column("national_id", sa.String(30), nullable=False, unique=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("station_id", sa.String(20), sa.ForeignKey("polling_stations.id"), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_voters_station_id", "voters", ["station_id"])

    op.create_table(
        "positions",
        sa.Column("id", sa.String(20), primary_key=True),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("kind", sa.String(20), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("kind IN ('national', 'constituency', 'ward')", name="ck_positions_kind"),
    )
    op.create_table(
        "candidates",
        sa.Column("id", sa.String(20), primary_key=True),
        sa.Column("position_id", sa.String(20), sa.ForeignKey("positions.id"), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("party", sa.String(100), nullable=True),
        sa.Column("constituency_id", sa.String(20), sa.ForeignKey("constituencies.id"), nullable=True),
        sa.Column("ward_id", sa.String(20), sa.ForeignKey("wards.id"), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("constituency_id IS NULL OR ward_id IS NULL", name="ck_candidates_single_scope"),
    )
    op.create_index("idx_candidates_position_constituency", "candidates", ["position_id", "constituency_id"])
    op.create_index("idx_candidates_position_ward", "candidates", ["position_id", "ward_id"])


def downgrade() -> None:
    op.drop_table("candidates")
    op.drop_table("positions")
    op.drop_table("voters")
    op.drop_table("polling_stations")
    op.drop_table("wards")
    op.drop_table("constituencies")
    op.drop_table("districts")
    op.drop_table("users")
