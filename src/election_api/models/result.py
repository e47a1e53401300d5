"""Derived result projections: per-candidate tallies and per-scope winners.

Both tables are disposable: they are replaced per scope key (delete then
insert) after each recompute and can be rebuilt from the ballot ledger at
any time.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from election_api.models.base import Base, UUIDMixin


class CandidateTally(Base, UUIDMixin):
    """Non-void ballot count for one candidate within its scope key."""

    __tablename__ = "candidate_tallies"

    position_id: Mapped[str] = mapped_column(String(20), ForeignKey("positions.id"), nullable=False)
    candidate_id: Mapped[str] = mapped_column(String(20), ForeignKey("candidates.id"), nullable=False)
    scope_key: Mapped[str] = mapped_column(String(50), nullable=False)
    vote_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    computed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("position_id", "candidate_id", name="uq_candidate_tallies_position_candidate"),
        Index("idx_candidate_tallies_position_scope", "position_id", "scope_key"),
    )


class Winner(Base, UUIDMixin):
    """Candidate holding the maximum tally within a scope key (several rows on a tie)."""

    __tablename__ = "winners"

    position_id: Mapped[str] = mapped_column(String(20), ForeignKey("positions.id"), nullable=False)
    scope_key: Mapped[str] = mapped_column(String(50), nullable=False)
    candidate_id: Mapped[str] = mapped_column(String(20), ForeignKey("candidates.id"), nullable=False)
    vote_count: Mapped[int] = mapped_column(Integer, nullable=False)
    is_tie: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    resolved_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("position_id", "scope_key", "candidate_id", name="uq_winners_position_scope_candidate"),
        Index("idx_winners_position_scope", "position_id", "scope_key"),
    )
