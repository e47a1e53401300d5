"""Results CLI commands: reconcile, consistency check and winner listing.

These run in their own process, so they use a no-op result cache; the API
process's cache entries expire on their TTL.
"""

import asyncio
from typing import Annotated

import typer

results_app = typer.Typer()


@results_app.command("reconcile")
def reconcile() -> None:
    """Rebuild every tally and winner from the ballot ledger."""
    asyncio.run(_reconcile_impl())


async def _reconcile_impl() -> None:
    from election_api.core.cache import NullResultCache
    from election_api.core.config import get_settings
    from election_api.core.database import dispose_engine, init_engine, open_session
    from election_api.services.result_service import reconcile_all

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)

    try:
        async with open_session() as session:
            report = await reconcile_all(session, NullResultCache())
        typer.echo(
            f"Reconciled {report.positions} positions / {report.scope_keys} scope keys: "
            f"{report.tallies_written} tallies, {report.winners_written} winners, "
            f"{report.orphans_removed} orphan keys removed ({report.elapsed_seconds:.2f}s)"
        )
    finally:
        await dispose_engine()


@results_app.command("check")
def check() -> None:
    """Compare stored tallies with a fresh recount; exit 1 on drift."""
    asyncio.run(_check_impl())


async def _check_impl() -> None:
    from election_api.core.config import get_settings
    from election_api.core.database import dispose_engine, init_engine, open_session
    from election_api.services.result_service import check_consistency

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)

    try:
        async with open_session() as session:
            report = await check_consistency(session)
    finally:
        await dispose_engine()

    if report.consistent:
        typer.echo(f"Consistent: {report.checked_scope_keys} scope keys checked")
        return
    for entry in report.drift:
        stored = "missing" if entry.stored_count is None else entry.stored_count
        typer.echo(
            f"{entry.position_id}/{entry.scope_key} {entry.candidate_id}: "
            f"stored {stored}, ledger {entry.expected_count}"
        )
    typer.echo(f"{len(report.drift)} drifted tallies; run 'election-api results reconcile'", err=True)
    raise typer.Exit(code=1)


@results_app.command("winners")
def winners(
    position_id: Annotated[str | None, typer.Option("--position", help="Restrict to one position")] = None,
) -> None:
    """List materialized winners per scope key."""
    asyncio.run(_winners_impl(position_id))


async def _winners_impl(position_id: str | None) -> None:
    from election_api.core.cache import NullResultCache
    from election_api.core.config import get_settings
    from election_api.core.database import dispose_engine, init_engine, open_session
    from election_api.services.registry_service import PositionNotFoundError
    from election_api.services.result_service import get_winners

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)

    try:
        async with open_session() as session:
            response = await get_winners(session, NullResultCache(), position_id)
    except PositionNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e
    finally:
        await dispose_engine()

    if not response.items:
        typer.echo("No winners yet")
        return
    typer.echo(f"{'Position':<12} {'Scope':<24} {'Candidate':<30} {'Votes':>8}")
    typer.echo("-" * 77)
    for w in response.items:
        tie = " (tie)" if w.is_tie else ""
        typer.echo(f"{w.position_id:<12} {w.scope_key:<24} {w.candidate_name:<30} {w.vote_count:>8}{tie}")
