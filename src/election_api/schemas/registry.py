"""Registry document schema for the bulk registry loader.

A registry document is a single JSON object listing the geography,
positions, candidates and voters of an election.  Every list is optional so
that partial documents (e.g. a late candidate list) can be loaded on top of
an existing registry.
"""

from typing import Literal

from pydantic import BaseModel, Field


class DistrictEntry(BaseModel):
    id: str = Field(min_length=1, max_length=20)
    name: str
    region: str | None = None


class ConstituencyEntry(BaseModel):
    id: str = Field(min_length=1, max_length=20)
    name: str
    district_id: str


class WardEntry(BaseModel):
    id: str = Field(min_length=1, max_length=20)
    name: str
    constituency_id: str


class StationEntry(BaseModel):
    id: str = Field(min_length=1, max_length=20)
    name: str
    ward_id: str


class PositionEntry(BaseModel):
    id: str = Field(min_length=1, max_length=20)
    title: str
    kind: Literal["national", "constituency", "ward"]


class CandidateEntry(BaseModel):
    id: str = Field(min_length=1, max_length=20)
    position_id: str
    name: str
    party: str | None = None
    constituency_id: str | None = None
    ward_id: str | None = None


class VoterEntry(BaseModel):
    id: str = Field(min_length=1, max_length=30)
    national_id: str
    first_name: str
    last_name: str
    station_id: str


class RegistryDocument(BaseModel):
    """Complete or partial election registry."""

    districts: list[DistrictEntry] = Field(default_factory=list)
    constituencies: list[ConstituencyEntry] = Field(default_factory=list)
    wards: list[WardEntry] = Field(default_factory=list)
    stations: list[StationEntry] = Field(default_factory=list)
    positions: list[PositionEntry] = Field(default_factory=list)
    candidates: list[CandidateEntry] = Field(default_factory=list)
    voters: list[VoterEntry] = Field(default_factory=list)


class RegistryLoadSummary(BaseModel):
    """Rows inserted or updated per registry table."""

    districts: int = 0
    constituencies: int = 0
    wards: int = 0
    stations: int = 0
    positions: int = 0
    candidates: int = 0
    voters: int = 0
