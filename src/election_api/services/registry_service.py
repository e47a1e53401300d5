"""Registry service: positions, candidates and voter scope lookups.

Also hosts the bulk registry loader used to seed an election from a JSON
document.  Everything else in the application treats the registry as
read-only.
"""

from collections.abc import Sequence

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from election_api.lib.results import PositionKind, VoterScope, validate_candidate_scope
from election_api.models.candidate import Candidate
from election_api.models.geography import Constituency, District, PollingStation, Ward
from election_api.models.position import Position
from election_api.models.voter import Voter
from election_api.schemas.registry import RegistryDocument, RegistryLoadSummary


class PositionNotFoundError(LookupError):
    """Raised when a position id is not in the registry."""


class VoterNotFoundError(LookupError):
    """Raised when a voter id is not in the registry or has no resolvable scope."""


async def get_position(session: AsyncSession, position_id: str) -> Position:
    """Fetch a position by id.

    Raises:
        PositionNotFoundError: If the position does not exist.
    """
    position = await session.get(Position, position_id)
    if position is None:
        msg = f"Position '{position_id}' not found"
        raise PositionNotFoundError(msg)
    return position


async def list_positions(session: AsyncSession) -> list[Position]:
    result = await session.execute(select(Position).order_by(Position.id))
    return list(result.scalars().all())


async def get_voter_scope(session: AsyncSession, voter_id: str) -> VoterScope:
    """Resolve a voter's home scope by walking station → ward → constituency.

    Args:
        session: Database session.
        voter_id: Registered voter id (from the session token).

    Returns:
        The voter's full scope.

    Raises:
        VoterNotFoundError: If the voter is unknown.
    """
    stmt = (
        select(
            Voter.id,
            Voter.station_id,
            Ward.id,
            Ward.constituency_id,
            Constituency.district_id,
        )
        .join(PollingStation, Voter.station_id == PollingStation.id)
        .join(Ward, PollingStation.ward_id == Ward.id)
        .join(Constituency, Ward.constituency_id == Constituency.id)
        .where(Voter.id == voter_id)
    )
    row = (await session.execute(stmt)).one_or_none()
    if row is None:
        msg = f"Voter '{voter_id}' not found"
        raise VoterNotFoundError(msg)
    return VoterScope(
        voter_id=row[0],
        station_id=row[1],
        ward_id=row[2],
        constituency_id=row[3],
        district_id=row[4],
    )


async def list_candidates_for_voter(
    session: AsyncSession,
    voter: VoterScope,
    position_id: str,
) -> tuple[Position, str, list[Candidate]]:
    """Return the ballot paper a voter sees for one position.

    Scoped positions only list the candidates registered in the voter's own
    constituency or ward.

    Returns:
        Tuple of (position, the voter's scope key for it, candidates).

    Raises:
        PositionNotFoundError: If the position does not exist.
    """
    position = await get_position(session, position_id)
    kind = PositionKind(position.kind)

    stmt = select(Candidate).where(Candidate.position_id == position.id)
    if kind is PositionKind.CONSTITUENCY:
        stmt = stmt.where(Candidate.constituency_id == voter.constituency_id)
    elif kind is PositionKind.WARD:
        stmt = stmt.where(Candidate.ward_id == voter.ward_id)
    result = await session.execute(stmt.order_by(Candidate.id))
    return position, voter.scope_key_for(kind), list(result.scalars().all())


# --- Bulk registry loader ---


async def _upsert_by_id(session: AsyncSession, model: type, entries: Sequence) -> int:
    for entry in entries:
        values = entry.model_dump()
        row = await session.get(model, values["id"])
        if row is None:
            session.add(model(**values))
        else:
            for field, value in values.items():
                setattr(row, field, value)
    await session.flush()
    return len(entries)


async def load_registry(session: AsyncSession, document: RegistryDocument) -> RegistryLoadSummary:
    """Insert or update every registry row in ``document``, parents first.

    Candidates are checked against their position's kind before anything is
    written for them: a constituency position's candidate must name a
    constituency, a ward position's candidate a ward, and a national
    candidate neither.

    Args:
        session: Database session.
        document: Parsed registry document.

    Returns:
        Per-table counts of rows loaded.

    Raises:
        PositionNotFoundError: If a candidate references an unknown position.
        ValueError: If a candidate's scope does not fit its position.
    """
    try:
        summary = RegistryLoadSummary(
            districts=await _upsert_by_id(session, District, document.districts),
            constituencies=await _upsert_by_id(session, Constituency, document.constituencies),
            wards=await _upsert_by_id(session, Ward, document.wards),
            stations=await _upsert_by_id(session, PollingStation, document.stations),
            positions=await _upsert_by_id(session, Position, document.positions),
        )

        for entry in document.candidates:
            position = await get_position(session, entry.position_id)
            try:
                validate_candidate_scope(PositionKind(position.kind), entry.constituency_id, entry.ward_id)
            except ValueError as e:
                msg = f"Candidate '{entry.id}': {e}"
                raise ValueError(msg) from e
        summary.candidates = await _upsert_by_id(session, Candidate, document.candidates)
        summary.voters = await _upsert_by_id(session, Voter, document.voters)

        await session.commit()
    except Exception:
        await session.rollback()
        raise

    logger.info(
        "Registry loaded: {} positions, {} candidates, {} voters",
        summary.positions,
        summary.candidates,
        summary.voters,
    )
    return summary
