"""Ballot ledger: append-only record of every cast or imported vote.

The ledger is the sole source of truth for results.  Rows are never
updated or deleted by the application; tallies and winners are derived
projections rebuilt from it.
"""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, Uuid, func, text
from sqlalchemy.orm import Mapped, mapped_column

from election_api.models.base import Base

BALLOT_SOURCE_CAST = "cast"
BALLOT_SOURCE_IMPORT = "import"


class Ballot(Base):
    """One voter's recorded choice for one position.

    ``candidate_id`` NULL is the spoiled ("none") marker.  Ballots admitted
    through the vote admission guard carry ``source='cast'`` and are covered
    by a partial unique index on (voter_id, position_id); imported ballots
    are not, so migrated duplicates can still reach the ledger and are
    voided by the null/void detector.
    """

    __tablename__ = "ballots"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    voter_id: Mapped[str] = mapped_column(String(30), ForeignKey("voters.id"), nullable=False)
    position_id: Mapped[str] = mapped_column(String(20), ForeignKey("positions.id"), nullable=False)
    candidate_id: Mapped[str | None] = mapped_column(String(20), ForeignKey("candidates.id"), nullable=True)
    station_id: Mapped[str] = mapped_column(String(20), ForeignKey("polling_stations.id"), nullable=False)
    source: Mapped[str] = mapped_column(String(10), nullable=False, server_default=BALLOT_SOURCE_CAST)
    cast_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("source IN ('cast', 'import')", name="ck_ballots_source"),
        Index("idx_ballots_voter_position", "voter_id", "position_id"),
        Index("idx_ballots_position_candidate", "position_id", "candidate_id"),
        Index("idx_ballots_cast_at", "cast_at"),
        Index(
            "uq_ballots_cast_voter_position",
            "voter_id",
            "position_id",
            unique=True,
            postgresql_where=text("source = 'cast'"),
            sqlite_where=text("source = 'cast'"),
        ),
    )
