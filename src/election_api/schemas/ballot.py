"""Pydantic v2 schemas for the voting endpoints.

The cast request deliberately carries no voter id: the voter is taken from
the session token and the voter's scope from the registry.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class CastVoteRequest(BaseModel):
    """Request body for casting one ballot."""

    position_id: str = Field(min_length=1, max_length=20)
    candidate_id: str = Field(min_length=1, max_length=20)


class BallotReceipt(BaseModel):
    """Acknowledgement of an admitted ballot.

    ``results_current`` is false when the ballot was recorded but the
    derived results for its scope could not be refreshed; a reconcile run
    brings them back in line.
    """

    ballot_id: uuid.UUID
    position_id: str
    scope_key: str
    cast_at: datetime
    results_current: bool = True


class CandidateOption(BaseModel):
    """One line on a voter's ballot paper."""

    model_config = {"from_attributes": True}

    id: str
    name: str
    party: str | None = None


class PositionResponse(BaseModel):
    """Position summary."""

    model_config = {"from_attributes": True}

    id: str
    title: str
    kind: str


class BallotPaperResponse(BaseModel):
    """Candidates a voter may choose from for one position."""

    position: PositionResponse
    scope_key: str
    candidates: list[CandidateOption]


class VotingStatusResponse(BaseModel):
    """Which positions a voter has and has not voted for."""

    voter_id: str
    voted_positions: list[str]
    remaining_positions: list[str]
    complete: bool


class BallotHistoryItem(BaseModel):
    """One of the voter's own ballots."""

    ballot_id: uuid.UUID
    position_id: str
    position_title: str
    candidate_id: str | None
    candidate_name: str | None
    cast_at: datetime


class BallotImportResult(BaseModel):
    """Outcome of a bulk ballot file import."""

    total_rows: int = 0
    imported: int = 0
    spoiled: int = 0
    rejected: int = 0
    errors: list[dict] = Field(default_factory=list, description="Per-row rejection reasons")
