"""Candidate model."""

from sqlalchemy import CheckConstraint, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from election_api.models.base import Base, TimestampMixin


class Candidate(Base, TimestampMixin):
    """Candidate standing for a position, optionally bound to a constituency or ward."""

    __tablename__ = "candidates"

    id: Mapped[str] = mapped_column(String(20), primary_key=True)
    position_id: Mapped[str] = mapped_column(String(20), ForeignKey("positions.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    party: Mapped[str | None] = mapped_column(String(100), nullable=True)
    constituency_id: Mapped[str | None] = mapped_column(
        String(20), ForeignKey("constituencies.id"), nullable=True
    )
    ward_id: Mapped[str | None] = mapped_column(String(20), ForeignKey("wards.id"), nullable=True)

    position: Mapped["Position"] = relationship(back_populates="candidates")  # noqa: F821

    __table_args__ = (
        CheckConstraint(
            "constituency_id IS NULL OR ward_id IS NULL",
            name="ck_candidates_single_scope",
        ),
        Index("idx_candidates_position_constituency", "position_id", "constituency_id"),
        Index("idx_candidates_position_ward", "position_id", "ward_id"),
    )
