"""Returning officer and observer account commands."""

import asyncio
from typing import Annotated

import typer

user_app = typer.Typer()


@user_app.command("create")
def create_user(
    username: Annotated[str, typer.Option(prompt=True, help="Login name")],
    email: Annotated[str, typer.Option(prompt=True, help="Contact email")],
    password: Annotated[str, typer.Option(prompt=True, hide_input=True, confirmation_prompt=True, help="Password")],
    role: Annotated[str, typer.Option(prompt=True, help="admin (returning officer) or observer")] = "admin",
    if_not_exists: Annotated[
        bool, typer.Option("--if-not-exists", help="Succeed quietly when the account already exists")
    ] = False,
) -> None:
    """Create an official account."""
    asyncio.run(_create_user(username, email, password, role, if_not_exists=if_not_exists))


async def _create_user(username: str, email: str, password: str, role: str, *, if_not_exists: bool = False) -> None:
    from pydantic import ValidationError

    from election_api.core.config import get_settings
    from election_api.core.database import dispose_engine, init_engine, open_session
    from election_api.schemas.auth import UserCreateRequest
    from election_api.services.auth_service import create_user

    try:
        request = UserCreateRequest(username=username, email=email, password=password, role=role)
    except ValidationError as e:
        typer.echo(f"Invalid account details: {e}", err=True)
        raise typer.Exit(code=1) from e

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)

    try:
        async with open_session() as session:
            user = await create_user(session, request)
        typer.echo(f"User '{user.username}' created with role '{user.role}'")
    except ValueError as e:
        if if_not_exists and "already exists" in str(e):
            typer.echo(f"User '{username}' already exists, skipping")
            return
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e
    finally:
        await dispose_engine()


@user_app.command("list")
def list_users() -> None:
    """Print every official account."""
    asyncio.run(_list_users())


async def _list_users() -> None:
    from election_api.core.config import get_settings
    from election_api.core.database import dispose_engine, init_engine, open_session
    from election_api.services.auth_service import list_users

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)

    try:
        async with open_session() as session:
            users, total = await list_users(session, page_size=500)
    finally:
        await dispose_engine()

    typer.echo(f"{'Username':<20} {'Email':<30} {'Role':<10} {'Active':<8} Last login")
    typer.echo("-" * 90)
    for user in users:
        last_login = user.last_login_at.strftime("%Y-%m-%d %H:%M") if user.last_login_at else "never"
        typer.echo(f"{user.username:<20} {user.email:<30} {user.role:<10} {user.is_active!s:<8} {last_login}")
    typer.echo(f"\nTotal: {total}")
