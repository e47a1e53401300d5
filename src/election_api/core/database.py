"""Async engine and session lifecycle for the ballot ledger database.

One engine per process.  The API creates it in the lifespan hook, CLI
commands create and dispose it around a single ``asyncio.run``.  PostgreSQL
(asyncpg) in production; SQLite (aiosqlite) for tests and local runs, with
foreign keys switched on so ledger rows cannot point at unknown registry ids.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None

_NOT_INITIALIZED = "Database engine not initialized. Call init_engine() first."


def get_engine() -> AsyncEngine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _session_factory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _session_factory


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """Issue ``PRAGMA foreign_keys=ON`` on every new SQLite connection of ``engine``."""

    @event.listens_for(engine.sync_engine, "connect")
    def _set_pragma(dbapi_connection, _record) -> None:  # type: ignore[no-untyped-def]
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _with_search_path(kwargs: dict[str, object], schema: str) -> None:
    connect_args = kwargs.pop("connect_args", {})
    if not isinstance(connect_args, dict):
        msg = "connect_args must be a dict"
        raise TypeError(msg)
    connect_args["options"] = f"-c search_path={schema},public"
    kwargs["connect_args"] = connect_args


def init_engine(database_url: str, *, schema: str | None = None, **kwargs: object) -> AsyncEngine:
    """Create the process-wide engine and session factory.

    Args:
        database_url: Async SQLAlchemy URL.
        schema: PostgreSQL schema put first on the search path.
        **kwargs: Passed through to ``create_async_engine``.
    """
    global _engine, _session_factory  # noqa: PLW0603
    if schema is not None:
        _with_search_path(kwargs, schema)

    is_sqlite = database_url.startswith("sqlite")
    if not is_sqlite and kwargs.get("poolclass") is not StaticPool:
        kwargs.setdefault("pool_size", 10)
        kwargs.setdefault("max_overflow", 5)

    _engine = create_async_engine(database_url, **kwargs)
    if is_sqlite:
        enable_sqlite_foreign_keys(_engine)
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)
    return _engine


@asynccontextmanager
async def open_session() -> AsyncIterator[AsyncSession]:
    """Session outside a request, for CLI commands and the startup reconcile."""
    async with get_session_factory()() as session:
        yield session


async def dispose_engine() -> None:
    global _engine, _session_factory  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
