"""Tally assembly: turn raw per-candidate counts into CandidateTally rows."""

from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class TallyRow:
    """Non-void ballot count for one candidate within one scope key."""

    position_id: str
    candidate_id: str
    scope_key: str
    vote_count: int


def build_tallies(
    position_id: str,
    scope_key: str,
    candidate_ids: Iterable[str],
    counts: Mapping[str, int],
) -> list[TallyRow]:
    """Build one row per candidate in the scope key, zero-filling candidates with no votes.

    Counts for candidates outside ``candidate_ids`` are ignored: they belong
    to another scope key and must not leak into this one.

    Args:
        position_id: Position being tallied.
        scope_key: Scope key the candidates belong to.
        candidate_ids: Every candidate registered under ``scope_key``.
        counts: Non-void ballot counts keyed by candidate id.

    Returns:
        Rows ordered by candidate id.
    """
    return [
        TallyRow(
            position_id=position_id,
            candidate_id=candidate_id,
            scope_key=scope_key,
            vote_count=int(counts.get(candidate_id, 0)),
        )
        for candidate_id in sorted(set(candidate_ids))
    ]


def group_by_scope_key(tallies: Iterable[TallyRow]) -> dict[str, list[TallyRow]]:
    """Group tally rows by scope key, preserving input order within a key."""
    grouped: dict[str, list[TallyRow]] = defaultdict(list)
    for row in tallies:
        grouped[row.scope_key].append(row)
    return dict(grouped)


def scope_total(tallies: Iterable[TallyRow]) -> int:
    return sum(row.vote_count for row in tallies)


def percentage(part: int, whole: int) -> float:
    """Share of ``whole`` as a percentage rounded to 2 places; 0.0 when ``whole`` is 0."""
    if whole <= 0:
        return 0.0
    return round(part * 100 / whole, 2)
