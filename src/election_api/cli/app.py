"""Typer CLI root application with serve command."""

import typer

from election_api.core.config import get_settings
from election_api.core.logging import setup_logging

app = typer.Typer(name="election-api", help="Election ballot ledger and results CLI")


@app.callback()
def _main_callback() -> None:
    """Initialize logging for all CLI commands."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir)


@app.command()
def serve(
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload for development"),
    host: str = typer.Option("0.0.0.0", "--host", help="Bind host"),  # noqa: S104
    port: int = typer.Option(8000, "--port", help="Bind port"),
) -> None:
    """Start the API server."""
    import uvicorn

    uvicorn.run(
        "election_api.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


def _register_subcommands() -> None:
    """Register all CLI subcommand groups."""
    from election_api.cli.ballots_cmd import ballots_app
    from election_api.cli.db_cmd import db_app
    from election_api.cli.registry_cmd import registry_app
    from election_api.cli.results_cmd import results_app
    from election_api.cli.user_cmd import user_app
    from election_api.cli.voter_cmd import voter_app

    app.add_typer(db_app, name="db", help="Database migration commands")
    app.add_typer(user_app, name="user", help="Election official account commands")
    app.add_typer(voter_app, name="voter", help="Voter session commands")
    app.add_typer(registry_app, name="registry", help="Registry loading commands")
    app.add_typer(ballots_app, name="ballots", help="Ballot ledger import commands")
    app.add_typer(results_app, name="results", help="Tally, winner and reconciliation commands")


_register_subcommands()
