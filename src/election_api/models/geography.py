"""Administrative geography: district → constituency → ward → polling station.

Loaded by the registry loader; read-only for vote admission and tallying.
"""

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from election_api.models.base import Base, TimestampMixin


class District(Base, TimestampMixin):
    """Top-level administrative district."""

    __tablename__ = "districts"

    id: Mapped[str] = mapped_column(String(20), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    region: Mapped[str | None] = mapped_column(String(100), nullable=True)

    constituencies: Mapped[list["Constituency"]] = relationship(back_populates="district")


class Constituency(Base, TimestampMixin):
    """Parliamentary constituency; the aggregation scope of constituency-level races."""

    __tablename__ = "constituencies"

    id: Mapped[str] = mapped_column(String(20), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    district_id: Mapped[str] = mapped_column(String(20), ForeignKey("districts.id"), nullable=False, index=True)

    district: Mapped["District"] = relationship(back_populates="constituencies")
    wards: Mapped[list["Ward"]] = relationship(back_populates="constituency")


class Ward(Base, TimestampMixin):
    """Ward; the aggregation scope of ward-level races and of null/void reporting."""

    __tablename__ = "wards"

    id: Mapped[str] = mapped_column(String(20), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    constituency_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("constituencies.id"), nullable=False, index=True
    )

    constituency: Mapped["Constituency"] = relationship(back_populates="wards")
    stations: Mapped[list["PollingStation"]] = relationship(back_populates="ward")


class PollingStation(Base, TimestampMixin):
    """Polling station where a voter is registered."""

    __tablename__ = "polling_stations"

    id: Mapped[str] = mapped_column(String(20), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    ward_id: Mapped[str] = mapped_column(String(20), ForeignKey("wards.id"), nullable=False, index=True)

    ward: Mapped["Ward"] = relationship(back_populates="stations")
