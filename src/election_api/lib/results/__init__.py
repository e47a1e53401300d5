"""Results library: pure tallying, winner resolution and void summarisation.

Public API:
    - PositionKind, VoterScope, scope_key, parse_scope_key: scope key handling
    - candidate_scope_key, validate_candidate_scope, in_voter_scope: candidate scoping rules
    - TallyRow, build_tallies, group_by_scope_key, percentage: tally assembly
    - WinnerRow, resolve_winners: max-count winner resolution with ties
    - WardVoidCounts, WardVoidSummary, summarize_void: null/void reporting
"""

from election_api.lib.results.scope import (
    NATIONAL_SCOPE_KEY,
    PositionKind,
    VoterScope,
    candidate_scope_key,
    in_voter_scope,
    parse_scope_key,
    scope_key,
    validate_candidate_scope,
)
from election_api.lib.results.tally import TallyRow, build_tallies, group_by_scope_key, percentage, scope_total
from election_api.lib.results.void import UNKNOWN_WARD, WardVoidCounts, WardVoidSummary, summarize_void
from election_api.lib.results.winners import WinnerRow, resolve_scope, resolve_winners

__all__ = [
    "NATIONAL_SCOPE_KEY",
    "UNKNOWN_WARD",
    "PositionKind",
    "TallyRow",
    "VoterScope",
    "WardVoidCounts",
    "WardVoidSummary",
    "WinnerRow",
    "build_tallies",
    "candidate_scope_key",
    "group_by_scope_key",
    "in_voter_scope",
    "parse_scope_key",
    "percentage",
    "resolve_scope",
    "resolve_winners",
    "scope_key",
    "scope_total",
    "summarize_void",
    "validate_candidate_scope",
]
