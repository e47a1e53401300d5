"""Results API endpoints.

GET /results/positions/{position_id}/tally - live tally (public)
GET /results/winners - winners per scope key (public)
GET /results/summary - turnout summary (public)
GET /results/null-void - null/void audit per ward (admin)
POST /results/reconcile - rebuild derived results from the ledger (admin)
GET /results/consistency - compare derived results with the ledger (admin)
"""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from election_api.core.cache import ResultCache
from election_api.core.dependencies import get_async_session, get_cache, require_role
from election_api.models.user import User
from election_api.schemas.result import (
    ConsistencyResponse,
    LiveTallyResponse,
    NullVoidReportResponse,
    ReconcileResponse,
    ResultsSummaryResponse,
    WinnerListResponse,
)
from election_api.services import result_service, tally_service, void_service
from election_api.services.registry_service import PositionNotFoundError

results_router = APIRouter(prefix="/results", tags=["results"])


@results_router.get("/positions/{position_id}/tally", response_model=LiveTallyResponse)
async def get_live_tally(
    position_id: str,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    cache: Annotated[ResultCache, Depends(get_cache)],
) -> LiveTallyResponse:
    """Per-candidate counts for a position, grouped by scope key. Public endpoint."""
    try:
        return await tally_service.get_live_tally(session, position_id, cache)
    except PositionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@results_router.get("/winners", response_model=WinnerListResponse)
async def get_winners(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    cache: Annotated[ResultCache, Depends(get_cache)],
    position_id: str | None = Query(default=None, description="Restrict to one position"),
) -> WinnerListResponse:
    """Winner(s) per scope key; ties list every tied candidate. Public endpoint."""
    try:
        return await result_service.get_winners(session, cache, position_id)
    except PositionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@results_router.get("/summary", response_model=ResultsSummaryResponse)
async def get_summary(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    cache: Annotated[ResultCache, Depends(get_cache)],
) -> ResultsSummaryResponse:
    return await result_service.get_summary(session, cache)


@results_router.get("/null-void", response_model=NullVoidReportResponse)
async def get_null_void_report(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    _current_user: Annotated[User, Depends(require_role("admin"))],
    ward_id: str | None = Query(default=None, description="Restrict to one ward"),
    date_from: date | None = Query(default=None, description="Ballots cast on or after this date"),
    date_to: date | None = Query(default=None, description="Ballots cast on or before this date"),
) -> NullVoidReportResponse:
    """Void ballot counts and percentage per ward. Admin-only."""
    if date_from and date_to and date_from > date_to:
        raise HTTPException(status_code=422, detail="date_from must not be after date_to")
    return await void_service.get_null_void_report(session, ward_id=ward_id, date_from=date_from, date_to=date_to)


@results_router.post("/reconcile", response_model=ReconcileResponse)
async def reconcile(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    cache: Annotated[ResultCache, Depends(get_cache)],
    _current_user: Annotated[User, Depends(require_role("admin"))],
) -> ReconcileResponse:
    """Rebuild every tally and winner from the ballot ledger. Admin-only."""
    return await result_service.reconcile_all(session, cache)


@results_router.get("/consistency", response_model=ConsistencyResponse)
async def check_consistency(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    _current_user: Annotated[User, Depends(require_role("admin"))],
) -> ConsistencyResponse:
    """Report tallies that disagree with a fresh recount. Admin-only."""
    return await result_service.check_consistency(session)
