"""Registry loading CLI commands."""

import asyncio
from pathlib import Path
from typing import Annotated

import typer

registry_app = typer.Typer()


@registry_app.command("load")
def load(
    file_path: Annotated[Path, typer.Argument(help="Registry JSON document", exists=True, dir_okay=False)],
) -> None:
    """Insert or update districts, wards, stations, positions, candidates and voters from JSON."""
    asyncio.run(_load_impl(file_path))


async def _load_impl(file_path: Path) -> None:
    from pydantic import ValidationError

    from election_api.core.config import get_settings
    from election_api.core.database import dispose_engine, init_engine, open_session
    from election_api.schemas.registry import RegistryDocument
    from election_api.services.registry_service import load_registry

    try:
        document = RegistryDocument.model_validate_json(file_path.read_text(encoding="utf-8"))
    except ValidationError as e:
        typer.echo(f"Invalid registry document: {e}", err=True)
        raise typer.Exit(code=1) from e

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)

    try:
        async with open_session() as session:
            summary = await load_registry(session, document)
    except (LookupError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e
    finally:
        await dispose_engine()

    for table, count in summary.model_dump().items():
        typer.echo(f"{table:<16} {count:>8}")
