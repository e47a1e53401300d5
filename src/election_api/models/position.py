"""Position model: an office on the ballot and its aggregation scope rule."""

from sqlalchemy import CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from election_api.models.base import Base, TimestampMixin


class Position(Base, TimestampMixin):
    """Office being contested; ``kind`` selects national/constituency/ward scoping."""

    __tablename__ = "positions"

    id: Mapped[str] = mapped_column(String(20), primary_key=True)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)

    candidates: Mapped[list["Candidate"]] = relationship(back_populates="position")  # noqa: F821

    __table_args__ = (
        CheckConstraint("kind IN ('national', 'constituency', 'ward')", name="ck_positions_kind"),
    )
