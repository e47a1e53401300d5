"""Tally aggregator: count non-void ballots per candidate within one scope key.

Counting runs in SQL against the ballot ledger.  A ballot is counted only
when it names a candidate of the position, has no sibling ballot for the
same (voter, position), and, for scoped positions, was cast from a polling
station inside the same constituency or ward as the candidate.
"""

from datetime import datetime

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from election_api.core.cache import ResultCache, position_prefix
from election_api.lib.results import (
    NATIONAL_SCOPE_KEY,
    PositionKind,
    TallyRow,
    build_tallies,
    candidate_scope_key,
    parse_scope_key,
    percentage,
    scope_key,
)
from election_api.models.ballot import Ballot
from election_api.models.candidate import Candidate
from election_api.models.geography import PollingStation, Ward
from election_api.models.position import Position
from election_api.models.result import CandidateTally
from election_api.schemas.result import CandidateTallyResponse, LiveTallyResponse, ScopeTallyResponse
from election_api.services.registry_service import get_position


async def scope_keys_for_position(session: AsyncSession, position: Position) -> list[str]:
    """Every scope key a position is tallied under, derived from its candidates."""
    kind = PositionKind(position.kind)
    if kind is PositionKind.NATIONAL:
        return [NATIONAL_SCOPE_KEY]

    column = Candidate.constituency_id if kind is PositionKind.CONSTITUENCY else Candidate.ward_id
    result = await session.execute(
        select(column).where(Candidate.position_id == position.id, column.is_not(None)).distinct().order_by(column)
    )
    return [scope_key(kind, ref) for ref in result.scalars().all()]


async def _candidate_ids_in_scope(session: AsyncSession, position: Position, key: str) -> list[str]:
    kind, ref = parse_scope_key(key)
    stmt = select(Candidate.id).where(Candidate.position_id == position.id)
    if kind is PositionKind.CONSTITUENCY:
        stmt = stmt.where(Candidate.constituency_id == ref)
    elif kind is PositionKind.WARD:
        stmt = stmt.where(Candidate.ward_id == ref)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def count_scope_ballots(session: AsyncSession, position: Position, key: str) -> dict[str, int]:
    """Count non-void ballots per candidate within one scope key.

    Args:
        session: Database session.
        position: Position being counted.
        key: Scope key of the slice to count.

    Returns:
        Ballot counts keyed by candidate id; candidates without ballots are absent.

    Raises:
        ValueError: If ``key`` does not fit the position's kind.
    """
    kind, ref = parse_scope_key(key)
    if kind is not PositionKind(position.kind):
        msg = f"Scope key '{key}' does not apply to {position.kind} position '{position.id}'"
        raise ValueError(msg)

    sibling = aliased(Ballot)
    has_duplicate = (
        select(sibling.id)
        .where(
            sibling.voter_id == Ballot.voter_id,
            sibling.position_id == Ballot.position_id,
            sibling.id != Ballot.id,
        )
        .exists()
    )
    stmt = (
        select(Ballot.candidate_id, func.count(Ballot.id))
        .join(Candidate, Ballot.candidate_id == Candidate.id)
        .where(
            Ballot.position_id == position.id,
            Candidate.position_id == position.id,
            ~has_duplicate,
        )
        .group_by(Ballot.candidate_id)
    )
    if kind is PositionKind.CONSTITUENCY:
        stmt = (
            stmt.join(PollingStation, Ballot.station_id == PollingStation.id)
            .join(Ward, PollingStation.ward_id == Ward.id)
            .where(Ward.constituency_id == ref, Candidate.constituency_id == ref)
        )
    elif kind is PositionKind.WARD:
        stmt = stmt.join(PollingStation, Ballot.station_id == PollingStation.id).where(
            PollingStation.ward_id == ref, Candidate.ward_id == ref
        )

    result = await session.execute(stmt)
    return {candidate_id: count for candidate_id, count in result.all()}


async def compute_scope_tallies(session: AsyncSession, position: Position, key: str) -> list[TallyRow]:
    """Fresh tally rows for every candidate of one scope key, zero-filled."""
    candidate_ids = await _candidate_ids_in_scope(session, position, key)
    counts = await count_scope_ballots(session, position, key)
    return build_tallies(position.id, key, candidate_ids, counts)


async def get_live_tally(session: AsyncSession, position_id: str, cache: ResultCache) -> LiveTallyResponse:
    """Materialized per-candidate counts for a position, grouped by scope key.

    Candidates without a materialized row (never recomputed) show zero.

    Raises:
        PositionNotFoundError: If the position does not exist.
    """
    cache_key = f"{position_prefix(position_id)}tally"
    cached = cache.get(cache_key)
    if cached is not None:
        return cached
    generation = cache.generation()

    position = await get_position(session, position_id)
    kind = PositionKind(position.kind)
    result = await session.execute(
        select(Candidate, CandidateTally.vote_count, CandidateTally.computed_at)
        .outerjoin(
            CandidateTally,
            and_(
                CandidateTally.candidate_id == Candidate.id,
                CandidateTally.position_id == Candidate.position_id,
            ),
        )
        .where(Candidate.position_id == position.id)
        .order_by(Candidate.id)
    )

    grouped: dict[str, list[tuple[Candidate, int]]] = {}
    computed: list[datetime] = []
    for candidate, vote_count, computed_at in result.all():
        key = candidate_scope_key(kind, candidate.constituency_id, candidate.ward_id)
        grouped.setdefault(key, []).append((candidate, vote_count or 0))
        if computed_at is not None:
            computed.append(computed_at)

    scopes = []
    for key in sorted(grouped):
        entries = grouped[key]
        total = sum(count for _, count in entries)
        scopes.append(
            ScopeTallyResponse(
                scope_key=key,
                total_votes=total,
                candidates=[
                    CandidateTallyResponse(
                        candidate_id=candidate.id,
                        name=candidate.name,
                        party=candidate.party,
                        vote_count=count,
                        percentage=percentage(count, total),
                    )
                    for candidate, count in sorted(entries, key=lambda e: (-e[1], e[0].id))
                ],
            )
        )

    response = LiveTallyResponse(
        position_id=position.id,
        title=position.title,
        kind=position.kind,
        scopes=scopes,
        computed_at=min(computed) if computed else None,
    )
    cache.set(cache_key, response, generation)
    return response
