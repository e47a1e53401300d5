"""Ballot import library: parse legacy ballot CSV files for bulk ledger import."""

from election_api.lib.ballot_import.parser import (
    BALLOT_COLUMN_MAP,
    normalize_candidate_id,
    parse_ballot_chunks,
)

__all__ = ["BALLOT_COLUMN_MAP", "normalize_candidate_id", "parse_ballot_chunks"]
