"""Voter model: registered voter and home polling station."""

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from election_api.models.base import Base, TimestampMixin


class Voter(Base, TimestampMixin):
    """Registered voter.  Home scope is resolved through ``station_id``."""

    __tablename__ = "voters"

    id: Mapped[str] = mapped_column(String(30), primary_key=True)
    national_id: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    station_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("polling_stations.id"), nullable=False, index=True
    )

    station = relationship("PollingStation")
