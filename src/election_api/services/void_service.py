"""Null/void detector: audit the ballot ledger for void ballots.

Duplicate detection is a grouping query over the whole ledger by
(voter_id, position_id) with more than one row.  It does not care how the
extra ballots got there: admission rejects duplicates up front, so in a
healthy ledger every group found here came in through the import path.
"""

from datetime import UTC, date, datetime, time, timedelta

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from election_api.lib.results import WardVoidCounts, summarize_void
from election_api.models.ballot import Ballot
from election_api.models.geography import PollingStation, Ward
from election_api.models.voter import Voter
from election_api.schemas.result import NullVoidReportResponse, WardVoidResponse


def _duplicate_groups_subquery():  # type: ignore[no-untyped-def]
    return (
        select(Ballot.voter_id, Ballot.position_id)
        .group_by(Ballot.voter_id, Ballot.position_id)
        .having(func.count(Ballot.id) > 1)
        .subquery("duplicate_groups")
    )


async def find_duplicate_groups(
    session: AsyncSession,
    position_id: str | None = None,
) -> list[tuple[str, str, int]]:
    """List every (voter, position) pair holding more than one ballot.

    Returns:
        Tuples of (voter_id, position_id, ballot_count), ordered by position then voter.
    """
    stmt = (
        select(Ballot.voter_id, Ballot.position_id, func.count(Ballot.id))
        .group_by(Ballot.voter_id, Ballot.position_id)
        .having(func.count(Ballot.id) > 1)
        .order_by(Ballot.position_id, Ballot.voter_id)
    )
    if position_id is not None:
        stmt = stmt.where(Ballot.position_id == position_id)
    result = await session.execute(stmt)
    return [(voter_id, pos_id, count) for voter_id, pos_id, count in result.all()]


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=UTC)


def _per_voter_ward(stmt, dup, ward_id, date_from, date_to):  # type: ignore[no-untyped-def]
    """Join ``stmt`` from ballots to their duplicate group and voter ward, then apply the report filters."""
    stmt = (
        stmt.select_from(Ballot)
        .outerjoin(
            dup,
            and_(dup.c.voter_id == Ballot.voter_id, dup.c.position_id == Ballot.position_id),
        )
        .outerjoin(Voter, Voter.id == Ballot.voter_id)
        .outerjoin(PollingStation, PollingStation.id == Voter.station_id)
        .outerjoin(Ward, Ward.id == PollingStation.ward_id)
    )
    if ward_id is not None:
        stmt = stmt.where(Ward.id == ward_id)
    if date_from is not None:
        stmt = stmt.where(Ballot.cast_at >= _day_start(date_from))
    if date_to is not None:
        stmt = stmt.where(Ballot.cast_at < _day_start(date_to + timedelta(days=1)))
    return stmt


async def get_null_void_report(
    session: AsyncSession,
    ward_id: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> NullVoidReportResponse:
    """Void ballot counts and percentages per voter ward.

    Duplicate groups are detected across the whole ledger; the ward and
    date filters only narrow which ballots are reported.  Every ballot of a
    duplicate group is void, and so is every spoiled ballot.  A duplicate
    group counts as a single void event.

    Args:
        session: Database session.
        ward_id: Restrict the report to one ward.
        date_from: First cast date to include (inclusive).
        date_to: Last cast date to include (inclusive).

    Returns:
        The report, wards sorted by void percentage, highest first.
    """
    dup = _duplicate_groups_subquery()
    in_duplicate = dup.c.voter_id.is_not(None)
    spoiled_only = and_(Ballot.candidate_id.is_(None), dup.c.voter_id.is_(None))

    counts = _per_voter_ward(
        select(
            Ward.id,
            Ward.name,
            func.count(Ballot.id),
            func.sum(case((or_(in_duplicate, Ballot.candidate_id.is_(None)), 1), else_=0)),
            func.sum(case((spoiled_only, 1), else_=0)),
        ),
        dup,
        ward_id,
        date_from,
        date_to,
    ).group_by(Ward.id, Ward.name)

    reported_groups = (
        _per_voter_ward(
            select(Ward.id.label("ward_id"), dup.c.voter_id, dup.c.position_id),
            dup,
            ward_id,
            date_from,
            date_to,
        )
        .where(in_duplicate)
        .distinct()
        .subquery("reported_groups")
    )
    group_rows = await session.execute(
        select(reported_groups.c.ward_id, func.count()).group_by(reported_groups.c.ward_id)
    )
    groups_by_ward = dict(group_rows.all())

    result = await session.execute(counts)
    summaries = summarize_void(
        WardVoidCounts(
            ward_id=row_ward_id,
            ward_name=row_ward_name,
            total_ballots=total or 0,
            void_ballots=void or 0,
            spoiled_ballots=spoiled or 0,
            duplicate_groups=groups_by_ward.get(row_ward_id, 0),
        )
        for row_ward_id, row_ward_name, total, void, spoiled in result.all()
    )

    wards = [WardVoidResponse.model_validate(summary) for summary in summaries]
    return NullVoidReportResponse(
        ward_id=ward_id,
        date_from=date_from,
        date_to=date_to,
        wards=wards,
        total_void_ballots=sum(w.void_ballots for w in wards),
        total_void_events=sum(w.void_events for w in wards),
    )
