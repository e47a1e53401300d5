"""Ballot ledger and derived result tables.

The partial unique index on ballots(voter_id, position_id) covers only rows
admitted through the vote endpoint (source = 'cast'), so two concurrent
casts for the same voter and position cannot both commit.  Imported rows
are left out of it and audited by the null/void report instead.

Revision ID: 002
Revises: 001
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "ballots",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("voter_id", sa.String(30), sa.ForeignKey("voters.id"), nullable=False),
        sa.Column("position_id", sa.String(20), sa.ForeignKey("positions.id"), nullable=False),
        sa.Column("candidate_id", sa.String(20), sa.ForeignKey("candidates.id"), nullable=True),
        sa.Column("station_id", sa.String(20), sa.ForeignKey("polling_stations.id"), nullable=False),
        sa.Column("source", sa.String(10), nullable=False, server_default="cast"),
        sa.Column("cast_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("source IN ('cast', 'import')", name="ck_ballots_source"),
    )
    op.create_index("idx_ballots_voter_position", "ballots", ["voter_id", "position_id"])
    op.create_index("idx_ballots_position_candidate", "ballots", ["position_id", "candidate_id"])
    op.create_index("idx_ballots_cast_at", "ballots", ["cast_at"])
    op.create_index(
        "uq_ballots_cast_voter_position",
        "ballots",
        ["voter_id", "position_id"],
        unique=True,
        postgresql_where=sa.text("source = 'cast'"),
        sqlite_where=sa.text("source = 'cast'"),
    )

    op.create_table(
        "candidate_tallies",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("position_id", sa.String(20), sa.ForeignKey("positions.id"), nullable=False),
        sa.Column("candidate_id", sa.String(20), sa.ForeignKey("candidates.id"), nullable=False),
        sa.Column("scope_key", sa.String(50), nullable=False),
        sa.Column("vote_count", sa.Integer, nullable=False),
        sa.Column("computed_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("position_id", "candidate_id", name="uq_candidate_tallies_position_candidate"),
    )
    op.create_index("idx_candidate_tallies_position_scope", "candidate_tallies", ["position_id", "scope_key"])

    op.create_table(
        "winners",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("position_id", sa.String(20), sa.ForeignKey("positions.id"), nullable=False),
        sa.Column("scope_key", sa.String(50), nullable=False),
        sa.Column("candidate_id", sa.String(20), sa.ForeignKey("candidates.id"), nullable=False),
        sa.Column("vote_count", sa.Integer, nullable=False),
        sa.Column("is_tie", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("resolved_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("position_id", "scope_key", "candidate_id", name="uq_winners_position_scope_candidate"),
    )
    op.create_index("idx_winners_position_scope", "winners", ["position_id", "scope_key"])


def downgrade() -> None:
    op.drop_table("winners")
    op.drop_table("candidate_tallies")
    op.drop_index("uq_ballots_cast_voter_position", table_name="ballots")
    op.drop_table("ballots")
