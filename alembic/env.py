"""Alembic environment configuration for async SQLAlchemy migrations."""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool, text
from sqlalchemy.ext.asyncio import async_engine_from_config

import election_api.models  # noqa: F401  registers every table on Base.metadata
from election_api.core.config import get_settings
from election_api.models.base import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _settings_values() -> tuple[str, str | None]:
    """Database URL and optional schema from application settings."""
    settings = get_settings()
    return settings.database_url, settings.database_schema


def _configure(**kwargs: object) -> None:
    _, schema = _settings_values()
    kwargs.setdefault("target_metadata", target_metadata)
    kwargs.setdefault("compare_type", True)
    # SQLite cannot ALTER most constraints in place
    kwargs.setdefault("render_as_batch", str(kwargs.get("url", "")).startswith("sqlite"))
    if schema is not None:
        kwargs["version_table_schema"] = schema
    context.configure(**kwargs)


def run_migrations_offline() -> None:
    """Emit migration SQL without a database connection."""
    url, _ = _settings_values()
    _configure(url=url, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection) -> None:  # type: ignore[no-untyped-def]
    """Run migrations synchronously within a connection."""
    _, schema = _settings_values()
    if schema is not None:
        connection.execute(text(f'SET search_path TO "{schema}", public'))
    _configure(connection=connection, render_as_batch=connection.dialect.name == "sqlite")
    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Run migrations over an async engine built from application settings."""
    url, schema = _settings_values()
    configuration = config.get_section(config.config_ini_section, {})
    configuration["sqlalchemy.url"] = url

    connectable = async_engine_from_config(configuration, prefix="sqlalchemy.", poolclass=pool.NullPool)
    async with connectable.connect() as connection:
        if schema is not None:
            await connection.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{schema}"'))
            await connection.commit()
        await connection.run_sync(do_run_migrations)
    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
