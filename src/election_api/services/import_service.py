"""Import service: bulk-load ballot files into the ledger.

Imported ballots are written with ``source='import'`` and skip the
admission guard entirely: the partial unique index does not cover them, so
legacy duplicates land in the ledger and the null/void detector reports
them.  Rows are still checked against the registry so that the ledger
never points at unknown voters, positions or candidates.
"""

import time
import uuid
from datetime import UTC, datetime
from pathlib import Path

import pandas as pd
from dateutil.parser import parse as parse_date
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from election_api.lib.ballot_import import parse_ballot_chunks
from election_api.models.ballot import BALLOT_SOURCE_IMPORT, Ballot
from election_api.models.candidate import Candidate
from election_api.models.position import Position
from election_api.models.voter import Voter
from election_api.schemas.ballot import BallotImportResult

# asyncpg has a hard limit of 32767 query parameters
_IN_CLAUSE_BATCH = 5000


def _parse_cast_at(value: str | None) -> datetime:
    if not value:
        return datetime.now(UTC)
    parsed = parse_date(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


async def _lookup(session: AsyncSession, stmt_for, ids: set[str]) -> dict[str, str]:  # type: ignore[no-untyped-def]
    found: dict[str, str] = {}
    id_list = sorted(ids)
    for i in range(0, len(id_list), _IN_CLAUSE_BATCH):
        result = await session.execute(stmt_for(id_list[i : i + _IN_CLAUSE_BATCH]))
        found.update(dict(result.all()))
    return found


async def _process_chunk(
    session: AsyncSession,
    chunk: pd.DataFrame,
    row_offset: int,
    position_ids: set[str],
    summary: BallotImportResult,
) -> None:
    records = [{k: (None if pd.isna(v) else v) for k, v in row.items()} for row in chunk.to_dict("records")]
    voter_stations = await _lookup(
        session,
        lambda batch: select(Voter.id, Voter.station_id).where(Voter.id.in_(batch)),
        {r["voter_id"] for r in records if r["voter_id"]},
    )
    candidate_positions = await _lookup(
        session,
        lambda batch: select(Candidate.id, Candidate.position_id).where(Candidate.id.in_(batch)),
        {r["candidate_id"] for r in records if r["candidate_id"]},
    )

    ballots: list[Ballot] = []
    for offset, record in enumerate(records):
        row_number = row_offset + offset + 2  # header is line 1
        voter_id = record["voter_id"]
        position_id = record["position_id"]
        candidate_id = record["candidate_id"]

        reason = None
        if voter_id not in voter_stations:
            reason = f"unknown voter '{voter_id}'"
        elif position_id not in position_ids:
            reason = f"unknown position '{position_id}'"
        elif candidate_id is not None and candidate_positions.get(candidate_id) != position_id:
            reason = f"candidate '{candidate_id}' is not standing for position '{position_id}'"

        cast_at = None
        if reason is None:
            try:
                cast_at = _parse_cast_at(record["cast_at"])
            except (ValueError, OverflowError):
                reason = f"unparseable timestamp '{record['cast_at']}'"

        if reason is not None:
            summary.errors.append({"row": row_number, "voter_id": voter_id, "error": reason})
            continue

        ballots.append(
            Ballot(
                id=uuid.uuid4(),
                voter_id=voter_id,
                position_id=position_id,
                candidate_id=candidate_id,
                station_id=voter_stations[voter_id],
                source=BALLOT_SOURCE_IMPORT,
                cast_at=cast_at,
            )
        )
        if candidate_id is None:
            summary.spoiled += 1

    session.add_all(ballots)
    summary.imported += len(ballots)
    summary.total_rows += len(records)


async def import_ballots(session: AsyncSession, file_path: Path, batch_size: int = 1000) -> BallotImportResult:
    """Append every valid row of a ballot CSV file to the ledger.

    Each chunk is committed on its own; rejected rows are listed in the
    result rather than aborting the import.  Derived results are not
    touched here: callers run a reconcile afterwards.

    Args:
        session: Database session.
        file_path: Path to the ballot CSV file.
        batch_size: Rows per chunk.

    Returns:
        Import counts and per-row errors.
    """
    start = time.monotonic()
    summary = BallotImportResult()
    position_ids = set((await session.execute(select(Position.id))).scalars().all())

    try:
        row_offset = 0
        for chunk_idx, chunk in enumerate(parse_ballot_chunks(file_path, batch_size)):
            await _process_chunk(session, chunk, row_offset, position_ids, summary)
            await session.commit()
            row_offset += len(chunk)
            logger.info(f"Chunk {chunk_idx + 1} committed | running total: {summary.imported} ballots imported")
    except Exception:
        await session.rollback()
        raise

    summary.rejected = len(summary.errors)
    elapsed = time.monotonic() - start
    logger.info(
        f"Ballot import of {file_path.name} finished in {elapsed:.1f}s: {summary.total_rows} rows, "
        f"{summary.imported} imported ({summary.spoiled} spoiled), {summary.rejected} rejected"
    )
    return summary
