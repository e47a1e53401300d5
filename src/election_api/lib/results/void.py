"""Null/void summarisation per ward.

A ballot is void when its (voter, position) group holds more than one
ballot (the whole group is void) or when it carries the spoiled marker.
The detector's SQL produces raw per-ward counts; this module turns them
into the reported figures.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from election_api.lib.results.tally import percentage

UNKNOWN_WARD = "UNKNOWN"


@dataclass(frozen=True)
class WardVoidCounts:
    """Raw counts for one ward, as returned by the grouping query."""

    ward_id: str | None
    ward_name: str | None
    total_ballots: int
    void_ballots: int
    spoiled_ballots: int
    duplicate_groups: int


@dataclass(frozen=True)
class WardVoidSummary:
    """Reported null/void figures for one ward."""

    ward_id: str
    ward_name: str
    total_ballots: int
    void_ballots: int
    spoiled_ballots: int
    duplicate_groups: int
    void_events: int
    percentage: float


def summarize_void(rows: Iterable[WardVoidCounts]) -> list[WardVoidSummary]:
    """Build per-ward summaries, dropping wards without void ballots.

    A duplicate group counts as one void event however many ballots it
    holds; every spoiled ballot is its own event.

    Returns:
        Summaries sorted by percentage (highest first), then ward id.
    """
    summaries = [
        WardVoidSummary(
            ward_id=row.ward_id or UNKNOWN_WARD,
            ward_name=row.ward_name or "",
            total_ballots=row.total_ballots,
            void_ballots=row.void_ballots,
            spoiled_ballots=row.spoiled_ballots,
            duplicate_groups=row.duplicate_groups,
            void_events=row.duplicate_groups + row.spoiled_ballots,
            percentage=percentage(row.void_ballots, row.total_ballots),
        )
        for row in rows
        if row.void_ballots > 0
    ]
    return sorted(summaries, key=lambda s: (-s.percentage, s.ward_id))
