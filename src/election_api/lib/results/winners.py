"""Winner resolution: maximum tally per scope key, ties preserved.

Pure and storage-independent: ``group by scope key → max count → keep every
candidate at max``.  The same tally snapshot always yields the same winner
list, in the same order.
"""

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass

from election_api.lib.results.tally import TallyRow


@dataclass(frozen=True)
class WinnerRow:
    """A candidate holding the maximum tally within its scope key."""

    position_id: str
    scope_key: str
    candidate_id: str
    vote_count: int
    is_tie: bool


def resolve_scope(rows: list[TallyRow]) -> list[WinnerRow]:
    """Resolve the winner(s) of one scope key.

    A key where nobody has received a vote is a tie between all its candidates.
    """
    if not rows:
        return []
    top = max(row.vote_count for row in rows)
    leaders = sorted((row for row in rows if row.vote_count == top), key=lambda row: row.candidate_id)
    tie = len(leaders) > 1
    return [
        WinnerRow(
            position_id=row.position_id,
            scope_key=row.scope_key,
            candidate_id=row.candidate_id,
            vote_count=row.vote_count,
            is_tie=tie,
        )
        for row in leaders
    ]


def resolve_winners(tallies: Iterable[TallyRow]) -> list[WinnerRow]:
    """Resolve winners for every (position, scope key) present in ``tallies``.

    Args:
        tallies: CandidateTally snapshot, any order, any number of keys.

    Returns:
        Winner rows ordered by (position id, scope key, candidate id).
    """
    grouped: dict[tuple[str, str], list[TallyRow]] = defaultdict(list)
    for row in tallies:
        grouped[(row.position_id, row.scope_key)].append(row)

    winners: list[WinnerRow] = []
    for key in sorted(grouped):
        winners.extend(resolve_scope(grouped[key]))
    return winners
