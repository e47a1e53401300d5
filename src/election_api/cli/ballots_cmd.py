"""Ballot ledger import CLI commands."""

import asyncio
from pathlib import Path
from typing import Annotated

import typer

ballots_app = typer.Typer()


@ballots_app.command("import")
def import_ballots(
    file_path: Annotated[Path, typer.Argument(help="Ballot CSV file", exists=True, dir_okay=False)],
    batch_size: Annotated[int, typer.Option("--batch-size", help="Rows per committed chunk")] = 1000,
    reconcile: Annotated[
        bool,
        typer.Option("--reconcile/--no-reconcile", help="Rebuild tallies and winners after the import"),
    ] = True,
) -> None:
    """Append ballots from a legacy CSV export to the ledger."""
    asyncio.run(_import_impl(file_path, batch_size, reconcile=reconcile))


async def _import_impl(file_path: Path, batch_size: int, *, reconcile: bool) -> None:
    from election_api.core.cache import NullResultCache
    from election_api.core.config import get_settings
    from election_api.core.database import dispose_engine, init_engine, open_session
    from election_api.services.import_service import import_ballots as run_import
    from election_api.services.result_service import reconcile_all

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)

    try:
        async with open_session() as session:
            result = await run_import(session, file_path, batch_size)
            typer.echo(
                f"Rows: {result.total_rows} | imported: {result.imported} "
                f"(spoiled: {result.spoiled}) | rejected: {result.rejected}"
            )
            for error in result.errors[:20]:
                typer.echo(f"  row {error['row']}: {error['error']}", err=True)
            if result.rejected > 20:
                typer.echo(f"  ... and {result.rejected - 20} more", err=True)

            if reconcile:
                report = await reconcile_all(session, NullResultCache())
                typer.echo(
                    f"Reconciled {report.scope_keys} scope keys: "
                    f"{report.tallies_written} tallies, {report.winners_written} winners"
                )
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e
    finally:
        await dispose_engine()
