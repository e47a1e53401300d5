"""Voter session CLI commands (polling-station desk)."""

import asyncio
from typing import Annotated

import typer

voter_app = typer.Typer()


@voter_app.command("token")
def token(
    voter_id: Annotated[str, typer.Argument(help="Registered voter id")],
) -> None:
    """Issue a short-lived voting session token for a verified voter."""
    asyncio.run(_token_impl(voter_id))


async def _token_impl(voter_id: str) -> None:
    from election_api.core.config import get_settings
    from election_api.core.database import dispose_engine, init_engine, open_session
    from election_api.services.auth_service import issue_voter_token
    from election_api.services.registry_service import VoterNotFoundError

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)

    try:
        async with open_session() as session:
            response = await issue_voter_token(session, voter_id, settings)
        typer.echo(response.access_token)
        typer.echo(f"Expires in {response.expires_in // 60} minutes", err=True)
    except VoterNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e
    finally:
        await dispose_engine()
