"""Voting API endpoints (voter session token required).

POST /votes - cast one ballot
GET /votes/positions - positions on the ballot
GET /votes/candidates/{position_id} - the voter's ballot paper for a position
GET /votes/status - positions voted / remaining
GET /votes/history - the voter's own ballots

Admission refusals propagate to the application's AdmissionError handler,
which renders ``{detail, code}`` with the matching status.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from election_api.core.cache import ResultCache
from election_api.core.dependencies import get_async_session, get_cache, get_current_voter
from election_api.lib.results import VoterScope
from election_api.schemas.ballot import (
    BallotHistoryItem,
    BallotPaperResponse,
    BallotReceipt,
    CandidateOption,
    CastVoteRequest,
    PositionResponse,
    VotingStatusResponse,
)
from election_api.schemas.common import ErrorResponse
from election_api.services import ballot_service, registry_service
from election_api.services.registry_service import PositionNotFoundError

votes_router = APIRouter(prefix="/votes", tags=["votes"])

_ADMISSION_ERRORS: dict[int | str, dict] = {
    400: {"model": ErrorResponse, "description": "Candidate does not stand for the position"},
    403: {"model": ErrorResponse, "description": "Candidate is outside the voter's constituency or ward"},
    409: {"model": ErrorResponse, "description": "Voter already has a ballot for the position"},
    503: {"model": ErrorResponse, "description": "Admission timed out; safe to retry"},
}


@votes_router.post("", response_model=BallotReceipt, status_code=201, responses=_ADMISSION_ERRORS)
async def cast_vote(
    request: CastVoteRequest,
    voter: Annotated[VoterScope, Depends(get_current_voter)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    cache: Annotated[ResultCache, Depends(get_cache)],
) -> BallotReceipt:
    """Cast a ballot for one position."""
    try:
        return await ballot_service.cast_vote(session, voter, request.position_id, request.candidate_id, cache)
    except PositionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@votes_router.get("/positions", response_model=list[PositionResponse])
async def list_positions(
    _voter: Annotated[VoterScope, Depends(get_current_voter)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> list[PositionResponse]:
    """Every position on this election's ballot."""
    positions = await registry_service.list_positions(session)
    return [PositionResponse.model_validate(p) for p in positions]


@votes_router.get("/candidates/{position_id}", response_model=BallotPaperResponse)
async def get_ballot_paper(
    position_id: str,
    voter: Annotated[VoterScope, Depends(get_current_voter)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> BallotPaperResponse:
    """Candidates the voter may choose from, limited to the voter's own scope."""
    try:
        position, key, candidates = await registry_service.list_candidates_for_voter(session, voter, position_id)
    except PositionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return BallotPaperResponse(
        position=PositionResponse.model_validate(position),
        scope_key=key,
        candidates=[CandidateOption.model_validate(c) for c in candidates],
    )


@votes_router.get("/status", response_model=VotingStatusResponse)
async def get_voting_status(
    voter: Annotated[VoterScope, Depends(get_current_voter)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> VotingStatusResponse:
    return await ballot_service.get_voting_status(session, voter.voter_id)


@votes_router.get("/history", response_model=list[BallotHistoryItem])
async def get_ballot_history(
    voter: Annotated[VoterScope, Depends(get_current_voter)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> list[BallotHistoryItem]:
    """The voter's own ballots, newest first."""
    return await ballot_service.get_ballot_history(session, voter.voter_id)
