"""Vote admission guard and the voter's own ballot views.

Admission checks, in order: the position exists, the candidate stands for
that position, the candidate's scope matches the voter's server-side scope,
and the voter has no ballot for the position yet.  The deadline covers the
checks and the insert but stops before the commit, which is the durability
boundary: a ballot that made it to disk is never reported as timed out.
The follow-up recompute of the ballot's scope key is best-effort: if it
fails the ballot stands and the failure is logged for a later reconcile.
"""

import asyncio
import uuid
from datetime import UTC, datetime

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from election_api.core.cache import ResultCache
from election_api.core.config import Settings, get_settings
from election_api.core.logging import ballot_logger
from election_api.lib.results import PositionKind, VoterScope, candidate_scope_key, in_voter_scope
from election_api.models.ballot import BALLOT_SOURCE_CAST, Ballot
from election_api.models.candidate import Candidate
from election_api.models.position import Position
from election_api.schemas.ballot import BallotHistoryItem, BallotReceipt, VotingStatusResponse
from election_api.services.registry_service import get_position, list_positions
from election_api.services.result_service import ConsistencyError, recompute_scope


class AdmissionError(ValueError):
    """A ballot was refused by the admission guard."""

    code = "admission_rejected"


class AlreadyVotedError(AdmissionError):
    """The voter already has a ballot for the position."""

    code = "already_voted"


class InvalidCandidateForPositionError(AdmissionError):
    """The candidate does not exist or stands for another position."""

    code = "invalid_candidate"


class ScopeMismatchError(AdmissionError):
    """The candidate stands in a different constituency or ward than the voter."""

    code = "scope_mismatch"


class AdmissionTimeoutError(TimeoutError):
    """Admission did not finish in time; nothing was recorded and the cast may be retried."""

    code = "admission_timeout"


def _already_voted(position_id: str) -> AlreadyVotedError:
    return AlreadyVotedError(f"You have already voted for position '{position_id}'")


async def _admit(
    session: AsyncSession,
    voter: VoterScope,
    position_id: str,
    candidate_id: str,
) -> tuple[Position, str, Ballot]:
    position = await get_position(session, position_id)
    kind = PositionKind(position.kind)

    candidate = await session.get(Candidate, candidate_id)
    if candidate is None or candidate.position_id != position.id:
        msg = f"Candidate '{candidate_id}' is not standing for position '{position.id}'"
        raise InvalidCandidateForPositionError(msg)

    if not in_voter_scope(kind, voter, candidate.constituency_id, candidate.ward_id):
        msg = f"Candidate '{candidate_id}' is not standing in your {kind.value}"
        raise ScopeMismatchError(msg)

    existing = await session.execute(
        select(Ballot.id).where(Ballot.voter_id == voter.voter_id, Ballot.position_id == position.id).limit(1)
    )
    if existing.scalar_one_or_none() is not None:
        raise _already_voted(position.id)

    ballot = Ballot(
        id=uuid.uuid4(),
        voter_id=voter.voter_id,
        position_id=position.id,
        candidate_id=candidate.id,
        station_id=voter.station_id,
        source=BALLOT_SOURCE_CAST,
        cast_at=datetime.now(UTC),
    )
    session.add(ballot)
    try:
        await session.flush()
    except IntegrityError as e:
        # A concurrent cast for the same voter and position won the race.
        await session.rollback()
        raise _already_voted(position.id) from e

    return position, candidate_scope_key(kind, candidate.constituency_id, candidate.ward_id), ballot


async def cast_vote(
    session: AsyncSession,
    voter: VoterScope,
    position_id: str,
    candidate_id: str,
    cache: ResultCache,
    settings: Settings | None = None,
) -> BallotReceipt:
    """Admit one ballot and refresh the results of its scope key.

    Args:
        session: Database session.
        voter: The authenticated voter's server-side scope.
        position_id: Position being voted for.
        candidate_id: Chosen candidate.
        cache: Result cache, invalidated by the recompute.
        settings: Application settings (timeouts); defaults to the process settings.

    Returns:
        Receipt for the recorded ballot.

    Raises:
        PositionNotFoundError: If the position does not exist.
        AdmissionError: If the ballot is refused.
        AdmissionTimeoutError: If admission did not complete in time.
    """
    settings = settings or get_settings()
    events = ballot_logger(voter_id=voter.voter_id, position_id=position_id)

    try:
        async with asyncio.timeout(settings.cast_vote_timeout_seconds):
            position, key, ballot = await _admit(session, voter, position_id, candidate_id)
    except TimeoutError as e:
        await session.rollback()
        events.warning("Ballot admission timed out")
        msg = "Vote could not be recorded in time, please try again"
        raise AdmissionTimeoutError(msg) from e
    except AdmissionError as e:
        events.bind(code=e.code).warning("Ballot rejected")
        raise

    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        events.bind(code=AlreadyVotedError.code).warning("Ballot rejected")
        raise _already_voted(position.id) from e

    receipt = BallotReceipt(
        ballot_id=ballot.id,
        position_id=position.id,
        scope_key=key,
        cast_at=ballot.cast_at,
    )
    events.bind(scope_key=key).info("Ballot admitted")

    try:
        async with asyncio.timeout(settings.recompute_timeout_seconds):
            await recompute_scope(session, position, key, cache)
    except Exception as e:
        await session.rollback()
        error = ConsistencyError(f"Results for {receipt.position_id}/{key} stale after ballot {receipt.ballot_id}")
        logger.opt(exception=e).error("ConsistencyError: {}", error)
        receipt.results_current = False

    return receipt


async def get_voting_status(session: AsyncSession, voter_id: str) -> VotingStatusResponse:
    """Positions the voter has and has not voted for."""
    positions = await list_positions(session)
    result = await session.execute(select(Ballot.position_id).where(Ballot.voter_id == voter_id).distinct())
    voted = set(result.scalars().all())
    remaining = [p.id for p in positions if p.id not in voted]
    return VotingStatusResponse(
        voter_id=voter_id,
        voted_positions=sorted(voted),
        remaining_positions=remaining,
        complete=not remaining,
    )


async def get_ballot_history(session: AsyncSession, voter_id: str) -> list[BallotHistoryItem]:
    """The voter's own ballots, newest first."""
    result = await session.execute(
        select(Ballot, Position.title, Candidate.name)
        .join(Position, Ballot.position_id == Position.id)
        .outerjoin(Candidate, Ballot.candidate_id == Candidate.id)
        .where(Ballot.voter_id == voter_id)
        .order_by(Ballot.cast_at.desc())
    )
    return [
        BallotHistoryItem(
            ballot_id=ballot.id,
            position_id=ballot.position_id,
            position_title=title,
            candidate_id=ballot.candidate_id,
            candidate_name=name,
            cast_at=ballot.cast_at,
        )
        for ballot, title, name in result.all()
    ]
