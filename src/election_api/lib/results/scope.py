"""Scope keys: the aggregation boundary of a position.

A national position has a single key, ``national``.  Constituency and ward
positions have one key per constituency or ward, written
``constituency:<id>`` / ``ward:<id>``.  A candidate's key is derived from
its registered scope; a voter's key for a position is derived from the
voter's home scope.
"""

import enum
from dataclasses import dataclass

NATIONAL_SCOPE_KEY = "national"


class PositionKind(enum.StrEnum):
    """Scope rule of a position."""

    NATIONAL = "national"
    CONSTITUENCY = "constituency"
    WARD = "ward"


@dataclass(frozen=True)
class VoterScope:
    """A voter's server-side home scope (station → ward → constituency → district)."""

    voter_id: str
    station_id: str
    ward_id: str
    constituency_id: str
    district_id: str

    def ref_for(self, kind: PositionKind) -> str | None:
        """Return the scope reference that applies to positions of ``kind``."""
        if kind is PositionKind.CONSTITUENCY:
            return self.constituency_id
        if kind is PositionKind.WARD:
            return self.ward_id
        return None

    def scope_key_for(self, kind: PositionKind) -> str:
        return scope_key(kind, self.ref_for(kind))


def scope_key(kind: PositionKind, ref: str | None) -> str:
    """Build the scope key string for a position kind and scope reference.

    Raises:
        ValueError: If a scoped kind is given no reference.
    """
    if kind is PositionKind.NATIONAL:
        return NATIONAL_SCOPE_KEY
    if not ref:
        msg = f"A {kind.value} scope key needs a {kind.value} id"
        raise ValueError(msg)
    return f"{kind.value}:{ref}"


def parse_scope_key(key: str) -> tuple[PositionKind, str | None]:
    """Split a scope key back into (kind, ref).

    Raises:
        ValueError: If the key is malformed.
    """
    if key == NATIONAL_SCOPE_KEY:
        return PositionKind.NATIONAL, None
    kind_name, sep, ref = key.partition(":")
    if not sep or not ref:
        msg = f"Malformed scope key '{key}'"
        raise ValueError(msg)
    try:
        kind = PositionKind(kind_name)
    except ValueError as e:
        msg = f"Unknown scope kind in key '{key}'"
        raise ValueError(msg) from e
    if kind is PositionKind.NATIONAL:
        msg = f"Malformed scope key '{key}'"
        raise ValueError(msg)
    return kind, ref


def candidate_scope_ref(kind: PositionKind, constituency_id: str | None, ward_id: str | None) -> str | None:
    """Return the candidate's scope reference for a position of ``kind``."""
    if kind is PositionKind.CONSTITUENCY:
        return constituency_id
    if kind is PositionKind.WARD:
        return ward_id
    return None


def candidate_scope_key(kind: PositionKind, constituency_id: str | None, ward_id: str | None) -> str:
    """Scope key a candidate is tallied under.

    Raises:
        ValueError: If a scoped position's candidate has no registered scope.
    """
    return scope_key(kind, candidate_scope_ref(kind, constituency_id, ward_id))


def validate_candidate_scope(kind: PositionKind, constituency_id: str | None, ward_id: str | None) -> None:
    """Check a candidate's scope columns agree with its position's kind.

    Raises:
        ValueError: On a missing or superfluous scope reference.
    """
    if kind is PositionKind.NATIONAL and (constituency_id or ward_id):
        msg = "Candidates for national positions must not carry a constituency or ward"
        raise ValueError(msg)
    if kind is PositionKind.CONSTITUENCY and (not constituency_id or ward_id):
        msg = "Candidates for constituency positions need a constituency and no ward"
        raise ValueError(msg)
    if kind is PositionKind.WARD and (not ward_id or constituency_id):
        msg = "Candidates for ward positions need a ward and no constituency"
        raise ValueError(msg)


def in_voter_scope(
    kind: PositionKind,
    voter: VoterScope,
    constituency_id: str | None,
    ward_id: str | None,
) -> bool:
    """Whether a candidate may appear on this voter's ballot for a position of ``kind``."""
    if kind is PositionKind.NATIONAL:
        return True
    return candidate_scope_ref(kind, constituency_id, ward_id) == voter.ref_for(kind)
