"""Pydantic v2 schemas for the results, audit and reconciliation endpoints."""

from datetime import date, datetime

from pydantic import BaseModel, Field, computed_field

# --- Live tally ---


class CandidateTallyResponse(BaseModel):
    """Vote count for one candidate within its scope key."""

    candidate_id: str
    name: str
    party: str | None = None
    vote_count: int
    percentage: float = Field(description="Share of the scope key's valid votes, 2 decimal places")


class ScopeTallyResponse(BaseModel):
    """All candidates of one scope key."""

    scope_key: str
    total_votes: int
    candidates: list[CandidateTallyResponse]


class LiveTallyResponse(BaseModel):
    """Per-candidate counts for a position, grouped by scope key."""

    position_id: str
    title: str
    kind: str
    scopes: list[ScopeTallyResponse]
    computed_at: datetime | None = Field(
        default=None, description="Oldest recompute time among the position's tallies"
    )


# --- Winners ---


class WinnerResponse(BaseModel):
    """A winning candidate for one scope key."""

    position_id: str
    scope_key: str
    candidate_id: str
    candidate_name: str
    party: str | None = None
    vote_count: int
    is_tie: bool


class WinnerListResponse(BaseModel):
    """Winners across one or every position."""

    items: list[WinnerResponse]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def tied_scope_keys(self) -> list[str]:
        """``position_id/scope_key`` pairs whose result is a tie."""
        return sorted({f"{w.position_id}/{w.scope_key}" for w in self.items if w.is_tie})


# --- Null/void audit ---


class WardVoidResponse(BaseModel):
    """Null/void figures for one ward."""

    model_config = {"from_attributes": True}

    ward_id: str
    ward_name: str
    total_ballots: int
    void_ballots: int
    spoiled_ballots: int
    duplicate_groups: int
    void_events: int
    percentage: float


class NullVoidReportResponse(BaseModel):
    """Null/void report, one entry per ward with at least one void ballot."""

    ward_id: str | None = None
    date_from: date | None = None
    date_to: date | None = None
    wards: list[WardVoidResponse]
    total_void_ballots: int
    total_void_events: int


# --- Reconciliation ---


class ReconcileResponse(BaseModel):
    """Outcome of a full rebuild of derived results."""

    positions: int
    scope_keys: int
    tallies_written: int
    winners_written: int
    orphans_removed: int
    elapsed_seconds: float


class DriftEntry(BaseModel):
    """A stored tally that disagrees with a fresh recount of the ledger."""

    position_id: str
    scope_key: str
    candidate_id: str
    stored_count: int | None = Field(description="Materialized count, null when the row is missing")
    expected_count: int


class ConsistencyResponse(BaseModel):
    """Result of comparing materialized tallies with the ledger."""

    checked_scope_keys: int
    drift: list[DriftEntry]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def consistent(self) -> bool:
        return not self.drift


# --- Summary ---


class PositionSummary(BaseModel):
    """Ballot and candidate counts for one position."""

    position_id: str
    title: str
    kind: str
    candidates: int
    ballots: int


class ResultsSummaryResponse(BaseModel):
    """Election-wide turnout summary."""

    registered_voters: int
    voters_voted: int
    ballots_cast: int
    turnout_percentage: float
    positions: list[PositionSummary]
