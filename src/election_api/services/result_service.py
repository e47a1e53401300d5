"""Result materializer and result read models.

The materializer replaces the derived ``candidate_tallies`` and ``winners``
rows of one scope key at a time: fresh counts from the tally aggregator go
through the winner resolver, the key's old rows are deleted and the new
ones inserted in the same transaction.  Writers for the same key are
serialized; writers for different keys never wait on each other.
"""

import time

from loguru import logger
from sqlalchemy import delete, distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from election_api.core.cache import GLOBAL_PREFIX, ResultCache, position_prefix
from election_api.core.locks import advisory_lock_id, scope_locks
from election_api.core.logging import ballot_logger
from election_api.lib.results import TallyRow, WinnerRow, percentage, resolve_winners
from election_api.models.ballot import Ballot
from election_api.models.candidate import Candidate
from election_api.models.position import Position
from election_api.models.result import CandidateTally, Winner
from election_api.models.voter import Voter
from election_api.schemas.result import (
    ConsistencyResponse,
    DriftEntry,
    PositionSummary,
    ReconcileResponse,
    ResultsSummaryResponse,
    WinnerListResponse,
    WinnerResponse,
)
from election_api.services.registry_service import get_position, list_positions
from election_api.services.tally_service import compute_scope_tallies, scope_keys_for_position


class ConsistencyError(RuntimeError):
    """Derived results could not be refreshed after a durable ledger write."""


async def _acquire_advisory_lock(session: AsyncSession, position_id: str, scope_key: str) -> None:
    if session.get_bind().dialect.name != "postgresql":
        return
    await session.execute(select(func.pg_advisory_xact_lock(advisory_lock_id(position_id, scope_key))))


async def _replace_scope_rows(
    session: AsyncSession,
    position_id: str,
    scope_key: str,
    tallies: list[TallyRow],
    winners: list[WinnerRow],
) -> None:
    candidate_ids = [row.candidate_id for row in tallies]
    tally_filter = CandidateTally.scope_key == scope_key
    if candidate_ids:
        # A candidate re-registered under another key still owns its old row.
        tally_filter = tally_filter | CandidateTally.candidate_id.in_(candidate_ids)
    await session.execute(delete(CandidateTally).where(CandidateTally.position_id == position_id, tally_filter))
    await session.execute(delete(Winner).where(Winner.position_id == position_id, Winner.scope_key == scope_key))

    session.add_all(
        CandidateTally(
            position_id=row.position_id,
            candidate_id=row.candidate_id,
            scope_key=row.scope_key,
            vote_count=row.vote_count,
        )
        for row in tallies
    )
    session.add_all(
        Winner(
            position_id=row.position_id,
            scope_key=row.scope_key,
            candidate_id=row.candidate_id,
            vote_count=row.vote_count,
            is_tie=row.is_tie,
        )
        for row in winners
    )
    await session.flush()


def _invalidate(cache: ResultCache, position_id: str) -> None:
    cache.invalidate_prefix(position_prefix(position_id))
    cache.invalidate_prefix(GLOBAL_PREFIX)


async def recompute_scope(
    session: AsyncSession,
    position: Position,
    scope_key: str,
    cache: ResultCache,
) -> tuple[list[TallyRow], list[WinnerRow]]:
    """Rebuild the tallies and winners of one scope key from the ledger.

    Args:
        session: Database session with no pending changes.
        position: Position whose key is recomputed.
        scope_key: Scope key to rebuild.
        cache: Result cache to invalidate once the new rows are committed.

    Returns:
        Tuple of (tally rows written, winner rows written).
    """
    position_id = position.id
    async with scope_locks.hold(position_id, scope_key):
        try:
            await _acquire_advisory_lock(session, position_id, scope_key)
            tallies = await compute_scope_tallies(session, position, scope_key)
            winners = resolve_winners(tallies)
            await _replace_scope_rows(session, position_id, scope_key, tallies, winners)
            await session.commit()
        except Exception:
            await session.rollback()
            raise

    _invalidate(cache, position_id)
    ballot_logger(position_id=position_id, scope_key=scope_key).info(
        "Recomputed {} candidate(s), {} winner(s)", len(tallies), len(winners)
    )
    return tallies, winners


async def recompute_position(
    session: AsyncSession,
    position: Position,
    cache: ResultCache,
) -> tuple[int, int, int]:
    """Recompute every scope key of a position.

    Returns:
        Tuple of (scope keys, tally rows, winner rows) written.
    """
    keys = await scope_keys_for_position(session, position)
    tally_count = 0
    winner_count = 0
    for key in keys:
        tallies, winners = await recompute_scope(session, position, key, cache)
        tally_count += len(tallies)
        winner_count += len(winners)
    return len(keys), tally_count, winner_count


async def _remove_orphan_keys(session: AsyncSession, live_keys: set[tuple[str, str]]) -> int:
    stored = await session.execute(
        select(CandidateTally.position_id, CandidateTally.scope_key).union(
            select(Winner.position_id, Winner.scope_key)
        )
    )
    orphans = [(position_id, key) for position_id, key in stored.all() if (position_id, key) not in live_keys]
    if not orphans:
        return 0

    for position_id, key in orphans:
        await session.execute(
            delete(CandidateTally).where(CandidateTally.position_id == position_id, CandidateTally.scope_key == key)
        )
        await session.execute(delete(Winner).where(Winner.position_id == position_id, Winner.scope_key == key))
    await session.commit()
    return len(orphans)


async def reconcile_all(session: AsyncSession, cache: ResultCache) -> ReconcileResponse:
    """Rebuild every position's tallies and winners from the ledger.

    Idempotent and safe to run at any time, including while votes are being
    cast: each key is rebuilt under the same lock a per-vote recompute takes.
    Derived rows for keys that no longer exist are removed.

    Args:
        session: Database session.
        cache: Result cache, cleared once the rebuild finishes.

    Returns:
        Counts of what was rebuilt.
    """
    start = time.monotonic()
    positions = await list_positions(session)

    live_keys: set[tuple[str, str]] = set()
    tallies_written = 0
    winners_written = 0
    for position in positions:
        position_id = position.id
        keys = await scope_keys_for_position(session, position)
        for key in keys:
            tallies, winners = await recompute_scope(session, position, key, cache)
            tallies_written += len(tallies)
            winners_written += len(winners)
            live_keys.add((position_id, key))

    orphans_removed = await _remove_orphan_keys(session, live_keys)
    cache.clear()

    elapsed = time.monotonic() - start
    logger.info(
        f"Reconcile completed in {elapsed:.2f}s: {len(positions)} positions, {len(live_keys)} scope keys, "
        f"{tallies_written} tallies, {winners_written} winners, {orphans_removed} orphan keys removed"
    )
    return ReconcileResponse(
        positions=len(positions),
        scope_keys=len(live_keys),
        tallies_written=tallies_written,
        winners_written=winners_written,
        orphans_removed=orphans_removed,
        elapsed_seconds=round(elapsed, 3),
    )


async def check_consistency(session: AsyncSession) -> ConsistencyResponse:
    """Compare materialized tallies against a fresh recount, without writing.

    Returns:
        Every candidate whose stored count is missing or differs.
    """
    drift: list[DriftEntry] = []
    checked = 0
    for position in await list_positions(session):
        for key in await scope_keys_for_position(session, position):
            checked += 1
            expected = await compute_scope_tallies(session, position, key)
            stored_rows = await session.execute(
                select(CandidateTally.candidate_id, CandidateTally.vote_count).where(
                    CandidateTally.position_id == position.id,
                    CandidateTally.scope_key == key,
                )
            )
            stored = dict(stored_rows.all())
            for row in expected:
                stored_count = stored.pop(row.candidate_id, None)
                if stored_count != row.vote_count:
                    drift.append(
                        DriftEntry(
                            position_id=position.id,
                            scope_key=key,
                            candidate_id=row.candidate_id,
                            stored_count=stored_count,
                            expected_count=row.vote_count,
                        )
                    )
            drift.extend(
                DriftEntry(
                    position_id=position.id,
                    scope_key=key,
                    candidate_id=candidate_id,
                    stored_count=stored_count,
                    expected_count=0,
                )
                for candidate_id, stored_count in sorted(stored.items())
            )

    if drift:
        logger.warning(f"Consistency check found {len(drift)} drifted tallies across {checked} scope keys")
    return ConsistencyResponse(checked_scope_keys=checked, drift=drift)


# --- Read models ---


async def get_winners(
    session: AsyncSession,
    cache: ResultCache,
    position_id: str | None = None,
) -> WinnerListResponse:
    """Materialized winners, optionally for a single position.

    Raises:
        PositionNotFoundError: If ``position_id`` is given and unknown.
    """
    cache_key = f"{position_prefix(position_id)}winners" if position_id else f"{GLOBAL_PREFIX}winners"
    cached = cache.get(cache_key)
    if cached is not None:
        return cached
    generation = cache.generation()

    stmt = select(Winner, Candidate.name, Candidate.party).join(Candidate, Winner.candidate_id == Candidate.id)
    if position_id is not None:
        await get_position(session, position_id)
        stmt = stmt.where(Winner.position_id == position_id)
    result = await session.execute(stmt.order_by(Winner.position_id, Winner.scope_key, Winner.candidate_id))

    response = WinnerListResponse(
        items=[
            WinnerResponse(
                position_id=winner.position_id,
                scope_key=winner.scope_key,
                candidate_id=winner.candidate_id,
                candidate_name=name,
                party=party,
                vote_count=winner.vote_count,
                is_tie=winner.is_tie,
            )
            for winner, name, party in result.all()
        ]
    )
    cache.set(cache_key, response, generation)
    return response


async def get_summary(session: AsyncSession, cache: ResultCache) -> ResultsSummaryResponse:
    """Turnout and per-position ballot counts."""
    cache_key = f"{GLOBAL_PREFIX}summary"
    cached = cache.get(cache_key)
    if cached is not None:
        return cached
    generation = cache.generation()

    registered = (await session.execute(select(func.count(Voter.id)))).scalar_one()
    voted, ballots = (
        await session.execute(select(func.count(distinct(Ballot.voter_id)), func.count(Ballot.id)))
    ).one()

    candidate_counts = dict(
        (
            await session.execute(
                select(Candidate.position_id, func.count(Candidate.id)).group_by(Candidate.position_id)
            )
        ).all()
    )
    ballot_counts = dict(
        (await session.execute(select(Ballot.position_id, func.count(Ballot.id)).group_by(Ballot.position_id))).all()
    )

    response = ResultsSummaryResponse(
        registered_voters=registered,
        voters_voted=voted,
        ballots_cast=ballots,
        turnout_percentage=percentage(voted, registered),
        positions=[
            PositionSummary(
                position_id=position.id,
                title=position.title,
                kind=position.kind,
                candidates=candidate_counts.get(position.id, 0),
                ballots=ballot_counts.get(position.id, 0),
            )
            for position in await list_positions(session)
        ],
    )
    cache.set(cache_key, response, generation)
    return response
