"""Tests for winner resolution."""

from election_api.lib.results import TallyRow, WinnerRow, resolve_scope, resolve_winners


def _rows(position_id: str, key: str, counts: dict[str, int]) -> list[TallyRow]:
    return [TallyRow(position_id, candidate_id, key, count) for candidate_id, count in counts.items()]


class TestResolveWinners:
    def test_scoped_winners_per_constituency(self) -> None:
        """B wins C1 with 120 over F's 95; G wins C2 with 200 despite B's lower total."""
        tallies = _rows("MP", "constituency:C1", {"B": 120, "F": 95}) + _rows("MP", "constituency:C2", {"G": 200})

        winners = resolve_winners(tallies)

        assert winners == [
            WinnerRow("MP", "constituency:C1", "B", 120, False),
            WinnerRow("MP", "constituency:C2", "G", 200, False),
        ]

    def test_tie_keeps_every_leader(self) -> None:
        winners = resolve_winners(_rows("PRES", "national", {"E": 50, "A": 50}))

        assert [w.candidate_id for w in winners] == ["A", "E"]
        assert all(w.is_tie for w in winners)
        assert all(w.vote_count == 50 for w in winners)

    def test_tie_only_among_leaders(self) -> None:
        winners = resolve_winners(_rows("COUNC", "ward:W1", {"D": 10, "H": 10, "X": 3}))
        assert {w.candidate_id for w in winners} == {"D", "H"}

    def test_zero_votes_ties_every_candidate(self) -> None:
        """Nobody has a vote yet, so every candidate sits at the maximum."""
        assert resolve_winners(_rows("COUNC", "ward:W1", {"H": 0, "D": 0})) == [
            WinnerRow("COUNC", "ward:W1", "D", 0, True),
            WinnerRow("COUNC", "ward:W1", "H", 0, True),
        ]

    def test_lone_candidate_without_votes_wins(self) -> None:
        assert resolve_scope(_rows("COUNC", "ward:W3", {"K": 0})) == [WinnerRow("COUNC", "ward:W3", "K", 0, False)]

    def test_single_candidate_with_votes_wins(self) -> None:
        winners = resolve_winners(_rows("COUNC", "ward:W3", {"K": 1}))
        assert winners == [WinnerRow("COUNC", "ward:W3", "K", 1, False)]

    def test_same_snapshot_same_result(self) -> None:
        tallies = _rows("MP", "constituency:C2", {"G": 7}) + _rows("MP", "constituency:C1", {"F": 3, "B": 3})
        first = resolve_winners(tallies)
        second = resolve_winners(list(reversed(tallies)))
        assert first == second

    def test_positions_are_resolved_independently(self) -> None:
        tallies = _rows("PRES", "national", {"A": 2, "E": 1}) + _rows("MP", "constituency:C1", {"B": 0, "F": 1})
        winners = resolve_winners(tallies)
        assert [(w.position_id, w.candidate_id) for w in winners] == [("MP", "F"), ("PRES", "A")]

    def test_empty(self) -> None:
        assert resolve_winners([]) == []
        assert resolve_scope([]) == []
